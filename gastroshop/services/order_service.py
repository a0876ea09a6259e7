"""Сервис заказов.

- Оформление заказа из корзины (проверка наличия, снимок цен)
- Списание остатков после оплаты
- Ручная смена статуса заказа администратором
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.core.exceptions import (
    InvalidOrderError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
)
from gastroshop.db.models.order import Order, OrderItem, OrderStatus
from gastroshop.db.repositories.order_repo import OrderRepository
from gastroshop.db.repositories.product_repo import ProductRepository
from gastroshop.db.repositories.user_repo import UserRepository
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

# Допустимые переходы статуса заказа
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
}


@dataclass(frozen=True)
class CartItem:
    """Позиция корзины: товар и количество."""

    product_id: int
    quantity: int


class OrderService:
    """Сервис для работы с заказами."""

    def __init__(self, session: AsyncSession) -> None:
        """Инициализация сервиса.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session
        self._order_repo = OrderRepository(session)
        self._product_repo = ProductRepository(session)
        self._user_repo = UserRepository(session)

    async def get_order(self, order_id: int) -> Order:
        """Получить заказ по ID.

        Raises:
            OrderNotFoundError: Заказ не найден.
        """
        order = await self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def get_customer_email(self, order: Order) -> str | None:
        """Email покупателя заказа (None для гостевого заказа)."""
        if order.user_id is None:
            return None
        user = await self._user_repo.get_by_id(order.user_id)
        return user.email if user is not None else None

    async def create_order(
        self,
        user_id: int | None,
        items: Sequence[CartItem],
        shipping_address: dict[str, Any] | None = None,
    ) -> Order:
        """Оформить заказ из корзины.

        Цены берутся из каталога на момент оформления и дальше
        не меняются. Остатки здесь только проверяются, списываются
        они после оплаты.

        Args:
            user_id: ID покупателя или None для гостевого заказа.
            items: Позиции корзины.
            shipping_address: Адрес доставки.

        Returns:
            Заказ в статусе pending.

        Raises:
            InvalidOrderError: Корзина пуста, товар не найден,
                нет в наличии или не хватает остатка.
        """
        if not items:
            raise InvalidOrderError("Корзина пуста")

        products = await self._product_repo.get_by_ids(item.product_id for item in items)

        order_items: list[OrderItem] = []
        for item in items:
            if item.quantity <= 0:
                raise InvalidOrderError(
                    f"Некорректное количество товара {item.product_id}: {item.quantity}"
                )

            product = products.get(item.product_id)
            if product is None:
                raise InvalidOrderError(f"Товар не найден: {item.product_id}")
            if not product.in_stock:
                raise InvalidOrderError(f"Товара «{product.title}» нет в наличии")
            if product.quantity < item.quantity:
                raise InvalidOrderError(
                    f"Недостаточно товара «{product.title}»: "
                    f"в наличии {product.quantity}, запрошено {item.quantity}"
                )

            order_items.append(
                OrderItem(
                    product_id=product.id,
                    quantity=item.quantity,
                    price_cents=product.price_cents,
                )
            )

        order = await self._order_repo.create(
            user_id=user_id,
            items=order_items,
            currency=DEFAULT_CURRENCY,
            shipping_address=shipping_address,
        )
        await self._session.commit()
        return order

    async def decrease_product_quantities(self, order_id: int) -> None:
        """Списать со склада товары оплаченного заказа.

        Товары, удалённые из каталога, пропускаются с предупреждением.

        Raises:
            OrderNotFoundError: Заказ не найден.
        """
        order = await self.get_order(order_id)

        for item in order.items:
            product = await self._product_repo.decrease_quantity(
                item.product_id, item.quantity
            )
            if product is None:
                logger.warning(
                    "Товар %s из заказа %s не найден, списание пропущено",
                    item.product_id,
                    order_id,
                )

        await self._session.commit()
        logger.info("Списаны остатки по заказу %s", order_id)

    async def transition_status(self, order_id: int, target: str) -> Order:
        """Сменить статус заказа вручную.

        Допустимо: pending → paid/canceled, paid → shipped/canceled,
        shipped → delivered.

        Raises:
            OrderNotFoundError: Заказ не найден.
            InvalidStatusTransitionError: Переход не разрешён.
        """
        order = await self.get_order(order_id)
        current = order.status

        if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
            raise InvalidStatusTransitionError(current, target)

        updated = await self._order_repo.update_status(order_id, target)
        await self._session.commit()

        logger.info(
            "Статус заказа изменён вручную: id=%s, %s → %s", order_id, current, target
        )
        return updated or order
