"""Репозиторий для работы с покупателями.

Платёжному ядру нужен только поиск получателя уведомлений.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.db.models.user import User, UserRole


class UserRepository:
    """Репозиторий для работы с таблицей users."""

    def __init__(self, session: AsyncSession) -> None:
        """Инициализация репозитория.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        """Получить покупателя по ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Получить покупателя по email (без учёта регистра)."""
        stmt = select(User).where(User.email == email.lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        email: str,
        name: str | None = None,
        role: str = UserRole.CUSTOMER,
    ) -> User:
        """Создать покупателя.

        Email хранится в нижнем регистре.
        """
        user = User(email=email.lower(), name=name, role=role)
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user
