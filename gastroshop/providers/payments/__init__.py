"""Платёжные провайдеры.

- Mock — локальная разработка и автотесты, без внешних запросов
- YooKassa — платежи в рублях через REST API
- CloudPayments — платежи в рублях через счета CloudPayments

Архитектура:
- BasePaymentProvider — общий интерфейс
- PaymentProviderRegistry — выбор провайдера по имени
- PaymentService в services/ оркестрирует провайдеры и БД

Пример использования:
    from gastroshop.providers.payments import create_provider_registry

    registry = create_provider_registry(settings.payments, base_url=settings.app.base_url)
    provider = registry.get(settings.payments.provider)
"""

from gastroshop.providers.payments.base import (
    BasePaymentProvider,
    PaymentIntent,
    PaymentStatusInfo,
    ProviderPaymentStatus,
    WebhookEvent,
)
from gastroshop.providers.payments.cloudpayments import (
    CloudPaymentsProvider,
    create_cloudpayments_provider,
)
from gastroshop.providers.payments.mock import MockPaymentProvider, create_mock_provider
from gastroshop.providers.payments.registry import (
    PaymentProviderRegistry,
    create_provider_registry,
)
from gastroshop.providers.payments.yookassa import (
    YooKassaProvider,
    create_yookassa_provider,
)

__all__ = [
    "BasePaymentProvider",
    "CloudPaymentsProvider",
    "MockPaymentProvider",
    "PaymentIntent",
    "PaymentProviderRegistry",
    "PaymentStatusInfo",
    "ProviderPaymentStatus",
    "WebhookEvent",
    "YooKassaProvider",
    "create_cloudpayments_provider",
    "create_mock_provider",
    "create_provider_registry",
    "create_yookassa_provider",
]
