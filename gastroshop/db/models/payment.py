"""Модель платежа.

Каждая попытка оплаты заказа — отдельная строка. Строка создаётся при
инициации платежа и обновляется на месте при получении webhook'а.
Платежи не удаляются: история нужна для аудита и разбора споров.
"""

import json
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.db.models_base import Base


class PaymentStatus(StrEnum):
    """Статус платежа в нашей системе.

    Значения:
        AWAITING_PAYMENT: Платёж создан, покупатель на странице оплаты.
        PAID: Оплачен (провайдер прислал succeeded).
        CANCELED: Отменён.
        FAILED: Отклонён банком или провайдером.

    Статусы провайдера, которых нет в этом списке, сохраняются как есть.
    """

    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CANCELED = "canceled"
    FAILED = "failed"


class Payment(Base):
    """Платёж по заказу.

    Attributes:
        id: Внутренний ID платежа.
        provider_payment_id: ID платежа у провайдера. Уникален.
            Mock: mock_{order_id}_{hex}
            YooKassa: UUID платежа
            CloudPayments: cp_{order_id}_{hex}
        order_id: ID заказа (FK → orders.id).
        amount: Сумма в копейках.
        currency: Код валюты (RUB).
        status: Статус платежа (PaymentStatus или статус провайдера как есть).
        provider: Провайдер, создавший платёж (mock, yookassa, cloudpayments).
            По нему выбирается провайдер для проверки статуса и webhook'ов.
        checkout_url: Ссылка на страницу оплаты.
        webhook_event_id: ID последнего применённого события webhook'а.
            Уникален: повторная доставка того же события не применяется.
        metadata_json: JSON с дополнительными данными (order_id и т.д.).
        created_at: Время создания.
        updated_at: Время последнего обновления.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    provider_payment_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # ondelete="RESTRICT": заказы не удаляются, пока у них есть платежи
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default=DEFAULT_CURRENCY, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default=PaymentStatus.AWAITING_PAYMENT,
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    checkout_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    webhook_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Text вместо JSON потому что SQLite не поддерживает нативный JSON-тип
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)

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
        Index("ix_payments_provider_payment_id", "provider_payment_id", unique=True),
        # NULL не участвует в уникальности: платежи без событий не конфликтуют.
        # Гонка двух одинаковых доставок заканчивается IntegrityError у второй.
        Index("ix_payments_webhook_event_id", "webhook_event_id", unique=True),
        Index("ix_payments_order_created", "order_id", "created_at"),
    )

    @property
    def payment_metadata(self) -> dict[str, Any]:
        """Дополнительные данные платежа."""
        if not self.metadata_json:
            return {}
        return json.loads(self.metadata_json)

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<Payment(id={self.id}, provider_payment_id={self.provider_payment_id}, "
            f"order_id={self.order_id}, provider={self.provider}, "
            f"status={self.status}, amount={self.amount} {self.currency})>"
        )
