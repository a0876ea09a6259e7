"""Зависимости FastAPI для платёжных эндпоинтов.

Реестр провайдеров, очередь уведомлений, сборщик счётчиков и настройки
создаются фабрикой приложения и лежат в app.state. Отсюда они попадают
в сервисы, созданные на время одного запроса.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.config.settings import Settings
from gastroshop.core.exceptions import OrderNotFoundError
from gastroshop.db.base import get_session
from gastroshop.providers.payments.registry import PaymentProviderRegistry
from gastroshop.services.metrics import MetricsCollector
from gastroshop.services.notification_service import NotificationDispatcher
from gastroshop.services.order_service import OrderService
from gastroshop.services.payment_service import PaymentService, WebhookOutcome
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Настройки, с которыми создано приложение."""
    app_settings: Settings = request.app.state.settings
    return app_settings


def get_metrics(request: Request) -> MetricsCollector:
    """Сборщик счётчиков приложения."""
    metrics: MetricsCollector = request.app.state.metrics
    return metrics


def get_provider_registry(request: Request) -> PaymentProviderRegistry:
    """Реестр платёжных провайдеров."""
    registry: PaymentProviderRegistry = request.app.state.providers
    return registry


def get_notifier(request: Request) -> NotificationDispatcher | None:
    """Очередь уведомлений (None, если приложение запущено без неё)."""
    return getattr(request.app.state, "notifier", None)


def get_payment_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    app_settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[PaymentProviderRegistry, Depends(get_provider_registry)],
    notifier: Annotated[NotificationDispatcher | None, Depends(get_notifier)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
) -> PaymentService:
    """Создать PaymentService на время запроса."""
    return PaymentService(
        session,
        registry,
        default_provider=app_settings.payments.provider,
        notifier=notifier,
        metrics=metrics,
    )


def get_order_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OrderService:
    """Создать OrderService на время запроса."""
    return OrderService(session)


async def decrease_stock_after_payment(
    order_service: OrderService, outcome: WebhookOutcome
) -> None:
    """Списать товары, если платёж впервые стал оплаченным.

    Ошибка списания не влияет на ответ провайдеру: платёж уже
    сохранён, остатки можно поправить вручную.
    """
    if not outcome.became_paid or outcome.order_id is None:
        return

    try:
        await order_service.decrease_product_quantities(outcome.order_id)
    except (OrderNotFoundError, SQLAlchemyError) as e:
        logger.warning(
            "Не удалось списать остатки по заказу %s: %s", outcome.order_id, e
        )
