"""Подключение к базе данных.

- engine и фабрика сессий создаются лениво при первом обращении,
  поэтому импорт модуля не читает настройки
- get_session — зависимость FastAPI (сессия на запрос)
- DatabaseSession — контекстный менеджер для фоновых задач

URL базы данных:
- DATABASE__POSTGRES_URL указан — PostgreSQL (asyncpg)
- иначе — SQLite (data/gastroshop.db, драйвер aiosqlite)
"""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gastroshop.config.constants import DATA_DIR
from gastroshop.db.models_base import Base

__all__ = [
    "Base",
    "DatabaseSession",
    "dispose_engine",
    "get_async_session_factory",
    "get_engine",
    "get_session",
    "get_sync_engine",
]

if TYPE_CHECKING:
    from gastroshop.config.settings import Settings

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_settings() -> "Settings":
    """Ленивая загрузка настроек (тесты импортируют модуль без .env)."""
    from gastroshop.config.settings import settings

    return settings


def _get_database_url() -> str:
    """Получить URL подключения к базе данных (async).

    Returns:
        URL подключения в формате SQLAlchemy (с async-драйвером).
    """
    settings = _get_settings()
    if settings.database.postgres_url:
        return settings.database.postgres_url

    db_path = DATA_DIR / "gastroshop.db"
    return f"sqlite+aiosqlite:///{db_path}"


def _get_sync_database_url() -> str:
    """URL с синхронным драйвером для SQLAdmin.

    postgresql+asyncpg:// → postgresql://, sqlite+aiosqlite:// → sqlite://
    """
    return _get_database_url().replace("+asyncpg", "").replace("+aiosqlite", "")


def get_engine() -> AsyncEngine:
    """Получить асинхронный engine (пул соединений, ленивая инициализация)."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            _get_database_url(),
            echo=False,
            pool_pre_ping=True,
        )
    return _engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Получить фабрику асинхронных сессий (ленивая инициализация).

    expire_on_commit=False — объекты остаются доступными после commit,
    иначе обращение к атрибуту вне сессии требует повторной загрузки.

    Returns:
        Фабрика асинхронных сессий SQLAlchemy.
    """
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_factory


def get_sync_engine() -> Engine:
    """Получить синхронный engine для SQLAdmin."""
    return create_engine(
        _get_sync_database_url(),
        echo=False,
        pool_pre_ping=True,
    )


async def dispose_engine() -> None:
    """Закрыть пул соединений при остановке приложения."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Получить сессию для работы с БД (для FastAPI Depends).

    Yields:
        AsyncSession для выполнения запросов.
    """
    factory = get_async_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


class DatabaseSession:
    """Асинхронный контекстный менеджер для работы с БД.

    Откатывает транзакцию при ошибке.

    Пример использования:
        async with DatabaseSession() as session:
            order = await OrderRepository(session).get_by_id(order_id)
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        """Инициализировать менеджер.

        Args:
            session_factory: Фабрика сессий. По умолчанию — глобальная.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> AsyncSession:
        """Открыть сессию."""
        factory = self._session_factory or get_async_session_factory()
        self._session = factory()
        return await self._session.__aenter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Закрыть сессию, откатить при ошибке."""
        if self._session is None:
            return

        if exc_type is not None:
            await self._session.rollback()

        await self._session.close()
