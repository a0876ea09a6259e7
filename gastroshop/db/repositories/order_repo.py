"""Репозиторий для работы с заказами.

Заказ меняется только через update_status и update_payment_id:
сумма и позиции фиксируются при создании.
"""

import json
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.db.models.order import Order, OrderItem, OrderStatus
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)


class OrderRepository:
    """Репозиторий для работы с таблицей orders."""

    def __init__(self, session: AsyncSession) -> None:
        """Инициализация репозитория.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def create(
        self,
        *,
        user_id: int | None,
        items: Sequence[OrderItem],
        currency: str = DEFAULT_CURRENCY,
        shipping_address: dict[str, Any] | None = None,
    ) -> Order:
        """Создать заказ.

        Сумма считается здесь же как сумма (цена × количество) по позициям.

        Args:
            user_id: ID покупателя или None для гостевого заказа.
            items: Позиции с ценами на момент заказа.
            currency: Код валюты.
            shipping_address: Адрес доставки.

        Returns:
            Созданный заказ в статусе pending.
        """
        order = Order(
            user_id=user_id,
            items_json=json.dumps([asdict(item) for item in items]),
            amount=sum(item.total_cents for item in items),
            currency=currency,
            status=OrderStatus.PENDING,
            shipping_address_json=(
                json.dumps(shipping_address, ensure_ascii=False)
                if shipping_address is not None
                else None
            ),
        )
        self._session.add(order)
        await self._session.flush()
        await self._session.refresh(order)

        logger.info(
            "Создан заказ: id=%s, user_id=%s, amount=%s %s, позиций=%s",
            order.id,
            user_id,
            order.amount,
            currency,
            len(items),
        )

        return order

    async def get_by_id(self, order_id: int) -> Order | None:
        """Получить заказ по ID.

        Args:
            order_id: ID заказа.

        Returns:
            Order или None если не найден.
        """
        stmt = select(Order).where(Order.id == order_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status(self, order_id: int, status: str) -> Order | None:
        """Обновить статус заказа.

        Args:
            order_id: ID заказа.
            status: Новый статус.

        Returns:
            Обновлённый заказ или None если заказ не найден.
        """
        order = await self.get_by_id(order_id)
        if order is None:
            return None

        order.status = status
        await self._session.flush()
        await self._session.refresh(order)

        logger.info("Обновлён статус заказа: id=%s, status=%s", order_id, status)
        return order

    async def update_payment_id(self, order_id: int, payment_id: str) -> Order | None:
        """Привязать к заказу ID платежа у провайдера.

        Args:
            order_id: ID заказа.
            payment_id: ID платежа у провайдера.

        Returns:
            Обновлённый заказ или None если заказ не найден.
        """
        order = await self.get_by_id(order_id)
        if order is None:
            return None

        order.payment_id = payment_id
        await self._session.flush()
        await self._session.refresh(order)
        return order

    async def list_by_user(
        self, user_id: int, *, limit: int = 50, offset: int = 0
    ) -> list[Order]:
        """Получить заказы покупателя (новые первые)."""
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
