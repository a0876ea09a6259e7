"""Сервисы приложения.

Этот пакет содержит бизнес-логику приложения.

Сервисы:
- PaymentService — создание платежей, обработка webhook'ов, статусы.
- OrderService — оформление заказов, списание остатков, смена статусов.
- NotificationDispatcher — фоновая отправка писем о платежах.
- EmailService — SMTP-отправка писем.
- MetricsCollector — счётчики запросов и платёжных событий.
"""

from gastroshop.services.email_service import EmailService
from gastroshop.services.metrics import MetricsCollector, PaymentEvent
from gastroshop.services.notification_service import (
    NotificationDispatcher,
    PaymentNotification,
)
from gastroshop.services.order_service import CartItem, OrderService
from gastroshop.services.payment_service import (
    PaymentInfo,
    PaymentService,
    WebhookOutcome,
    create_payment_service,
)

__all__ = [
    "CartItem",
    "EmailService",
    "MetricsCollector",
    "NotificationDispatcher",
    "OrderService",
    "PaymentEvent",
    "PaymentInfo",
    "PaymentNotification",
    "PaymentService",
    "WebhookOutcome",
    "create_payment_service",
]
