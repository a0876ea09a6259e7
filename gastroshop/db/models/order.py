"""Модель заказа.

Заказ создаётся при оформлении корзины и дальше меняется только двумя
способами: переходом статуса и привязкой ID платежа. Заказы не удаляются.

Сумма заказа фиксируется при создании как сумма (цена × количество)
по позициям и больше не пересчитывается, даже если цены в каталоге
изменились.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.db.models_base import Base


class OrderStatus(StrEnum):
    """Статус заказа.

    Значения:
        PENDING: Создан, ждёт оплаты.
        PAID: Оплачен (по webhook'у провайдера или вручную в админке).
        CANCELED: Отменён (платёж отменён или решение администратора).
        SHIPPED: Передан в доставку. Только через админку.
        DELIVERED: Доставлен. Только через админку.
    """

    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


@dataclass(frozen=True, slots=True)
class OrderItem:
    """Позиция заказа.

    Attributes:
        product_id: ID товара.
        quantity: Количество.
        price_cents: Цена за единицу на момент заказа (копейки).
    """

    product_id: int
    quantity: int
    price_cents: int

    @property
    def total_cents(self) -> int:
        """Стоимость позиции."""
        return self.price_cents * self.quantity

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        """Восстановить позицию из JSON."""
        return cls(
            product_id=int(data["product_id"]),
            quantity=int(data["quantity"]),
            price_cents=int(data["price_cents"]),
        )


class Order(Base):
    """Заказ покупателя.

    Attributes:
        id: ID заказа.
        user_id: ID покупателя. None — гостевой заказ без регистрации.
        items_json: JSON-список позиций (OrderItem).
        amount: Сумма заказа в копейках.
        currency: Код валюты (RUB).
        status: Текущий статус (OrderStatus).
        payment_id: ID последнего платежа у провайдера.
        shipping_address_json: JSON с адресом доставки (произвольная структура).
        created_at: Время создания.
        updated_at: Время последнего изменения.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # ondelete="SET NULL": заказ переживает удаление покупателя
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Text вместо JSON потому что SQLite не поддерживает нативный JSON-тип
    items_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    amount: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default=DEFAULT_CURRENCY, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    payment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shipping_address_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        onupdate=func.now(),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def items(self) -> list[OrderItem]:
        """Позиции заказа."""
        return [OrderItem.from_dict(raw) for raw in json.loads(self.items_json or "[]")]

    @items.setter
    def items(self, value: list[OrderItem]) -> None:
        self.items_json = json.dumps([asdict(item) for item in value])

    @property
    def shipping_address(self) -> dict[str, Any] | None:
        """Адрес доставки."""
        if not self.shipping_address_json:
            return None
        return json.loads(self.shipping_address_json)

    @shipping_address.setter
    def shipping_address(self, value: dict[str, Any] | None) -> None:
        self.shipping_address_json = (
            json.dumps(value, ensure_ascii=False) if value is not None else None
        )

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<Order(id={self.id}, user_id={self.user_id}, status={self.status}, "
            f"amount={self.amount} {self.currency})>"
        )
