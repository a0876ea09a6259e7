"""Репозиторий для работы с платежами.

Основные операции:
- Создание платежа после ответа провайдера
- Поиск по ID провайдера и по ID события webhook'а (идемпотентность)
- Обновление статуса с отметкой применённого события
"""

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.db.models.payment import Payment, PaymentStatus
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentRepository:
    """Репозиторий для работы с таблицей payments.

    Методы делают flush, но не commit: границы транзакции
    определяет сервис.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализация репозитория.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def create(
        self,
        *,
        provider_payment_id: str,
        order_id: int,
        amount: int,
        currency: str,
        provider: str,
        checkout_url: str | None,
        status: str = PaymentStatus.AWAITING_PAYMENT,
        metadata: dict[str, Any] | None = None,
    ) -> Payment:
        """Создать новый платёж.

        Args:
            provider_payment_id: ID платежа у провайдера.
            order_id: ID заказа.
            amount: Сумма в копейках.
            currency: Код валюты.
            provider: Имя провайдера (mock, yookassa, cloudpayments).
            checkout_url: Ссылка на оплату.
            status: Начальный статус.
            metadata: Дополнительные данные (сохраняются как JSON).

        Returns:
            Созданный объект Payment.
        """
        payment = Payment(
            provider_payment_id=provider_payment_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            provider=provider,
            checkout_url=checkout_url,
            status=status,
            metadata_json=json.dumps(metadata) if metadata is not None else None,
        )
        self._session.add(payment)
        await self._session.flush()
        await self._session.refresh(payment)

        logger.info(
            "Создан платёж: id=%s, payment_id=%s, order_id=%s, provider=%s, amount=%s %s",
            payment.id,
            provider_payment_id,
            order_id,
            provider,
            amount,
            currency,
        )

        return payment

    async def get_by_id(self, payment_id: int) -> Payment | None:
        """Получить платёж по внутреннему ID."""
        stmt = select(Payment).where(Payment.id == payment_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_provider_payment_id(self, provider_payment_id: str) -> Payment | None:
        """Получить платёж по ID провайдера.

        Args:
            provider_payment_id: ID платежа у провайдера.

        Returns:
            Payment или None если не найден.
        """
        stmt = select(Payment).where(Payment.provider_payment_id == provider_payment_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_webhook_event_id(self, event_id: str) -> Payment | None:
        """Получить платёж, к которому уже применено событие webhook'а.

        Используется для идемпотентной обработки: если событие найдено,
        повторная доставка ничего не меняет.

        Args:
            event_id: ID события у провайдера.

        Returns:
            Payment или None если событие ещё не применялось.
        """
        stmt = select(Payment).where(Payment.webhook_event_id == event_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status(
        self,
        payment: Payment,
        status: str,
        *,
        webhook_event_id: str | None = None,
    ) -> Payment:
        """Обновить статус платежа.

        Args:
            payment: Объект платежа для обновления.
            status: Новый статус.
            webhook_event_id: ID применённого события (если есть).

        Returns:
            Обновлённый объект Payment.

        Raises:
            IntegrityError: Событие с таким ID уже применено к другому
                или этому же платежу в параллельной транзакции.
        """
        payment.status = status
        if webhook_event_id:
            payment.webhook_event_id = webhook_event_id

        await self._session.flush()
        await self._session.refresh(payment)

        logger.info(
            "Обновлён статус платежа: payment_id=%s, status=%s, event_id=%s",
            payment.provider_payment_id,
            status,
            webhook_event_id,
        )

        return payment

    async def list_by_order(self, order_id: int) -> list[Payment]:
        """Получить все попытки оплаты заказа (новые первые)."""
        stmt = (
            select(Payment)
            .where(Payment.order_id == order_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
