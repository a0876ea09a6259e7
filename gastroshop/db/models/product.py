"""Модель товара.

Каталог (создание, поиск, фильтры) ведётся отдельно. Здесь нужны
цена для снимка в заказе и остаток для проверки и списания.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.db.models_base import Base


class Product(Base):
    """Товар каталога.

    Attributes:
        id: Внутренний ID товара.
        slug: Человекочитаемый идентификатор для URL.
        title: Название товара.
        price_cents: Цена за единицу в копейках.
        currency: Код валюты (RUB).
        quantity: Остаток на складе.
        in_stock: Доступен ли товар для заказа.
            Сбрасывается в False, когда остаток доходит до нуля.
        created_at: Дата добавления в каталог.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    price_cents: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default=DEFAULT_CURRENCY, nullable=False)
    quantity: Mapped[int] = mapped_column(default=0, nullable=False)
    in_stock: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<Product(id={self.id}, slug={self.slug}, "
            f"price_cents={self.price_cents}, quantity={self.quantity})>"
        )
