"""Модель покупателя.

Регистрацией и аутентификацией занимается отдельный сервис.
Платёжному ядру нужен только email получателя уведомлений.
"""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from gastroshop.db.models_base import Base


class UserRole(StrEnum):
    """Роль пользователя."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class User(Base):
    """Покупатель магазина.

    Attributes:
        id: Внутренний ID (автоинкремент).
        email: Email для входа и уведомлений о платежах.
        name: Имя для обращения в письмах.
        role: Роль (customer, admin).
        created_at: Дата регистрации.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.CUSTOMER, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
