"""Реестр платёжных провайдеров (паттерн Registry, Open/Closed Principle).

Провайдер выбирается по строке из конфигурации или из записи платежа.
Экземпляры создаются лениво при первом обращении и переиспользуются,
при остановке приложения их HTTP-клиенты закрываются через close().
"""

from collections.abc import Callable

from gastroshop.config.models import PaymentsSettings
from gastroshop.core.exceptions import UnsupportedProviderError
from gastroshop.providers.payments.base import BasePaymentProvider
from gastroshop.providers.payments.cloudpayments import create_cloudpayments_provider
from gastroshop.providers.payments.mock import create_mock_provider
from gastroshop.providers.payments.yookassa import create_yookassa_provider
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

# Фабрика возвращает None, если для провайдера не хватает настроек
ProviderFactory = Callable[[], BasePaymentProvider | None]


class PaymentProviderRegistry:
    """Реестр платёжных провайдеров."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}
        self._instances: dict[str, BasePaymentProvider] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Зарегистрировать фабрику провайдера."""
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Зарегистрирован платёжный провайдер: %s", name)

    def get(self, name: str) -> BasePaymentProvider:
        """Получить провайдер по имени.

        Args:
            name: Имя провайдера (mock, yookassa, cloudpayments).

        Returns:
            Экземпляр провайдера.

        Raises:
            UnsupportedProviderError: Провайдер не зарегистрирован
                или для него не хватает настроек.
        """
        if name in self._instances:
            return self._instances[name]

        factory = self._factories.get(name)
        if factory is None:
            raise UnsupportedProviderError(name)

        provider = factory()
        if provider is None:
            logger.warning("Платёжный провайдер %s не настроен", name)
            raise UnsupportedProviderError(name)

        self._instances[name] = provider
        return provider

    def list_providers(self) -> list[str]:
        """Список зарегистрированных провайдеров."""
        return sorted(self._factories.keys())

    async def close(self) -> None:
        """Закрыть все созданные провайдеры."""
        for provider in self._instances.values():
            await provider.close()
        self._instances.clear()


def create_provider_registry(
    payments: PaymentsSettings, *, base_url: str
) -> PaymentProviderRegistry:
    """Создать реестр со всеми поддерживаемыми провайдерами.

    Args:
        payments: Настройки платежей.
        base_url: Публичный адрес магазина (ссылки на оплату, return_url).

    Returns:
        Реестр, в котором зарегистрированы mock, yookassa и cloudpayments.
    """
    registry = PaymentProviderRegistry()

    registry.register(
        "mock",
        lambda: create_mock_provider(
            base_url=base_url,
            webhook_secret=payments.mock.webhook_secret.get_secret_value(),
        ),
    )

    def _yookassa() -> BasePaymentProvider | None:
        settings = payments.yookassa
        if not settings.is_configured:
            return None
        return create_yookassa_provider(
            shop_id=settings.shop_id,  # type: ignore[arg-type]
            secret_key=settings.secret_key.get_secret_value(),  # type: ignore[union-attr]
            base_url=base_url,
            test_mode=settings.test_mode,
            webhook_url=settings.webhook_url,
            timeout=payments.http_timeout,
        )

    def _cloudpayments() -> BasePaymentProvider | None:
        settings = payments.cloudpayments
        if not settings.is_configured:
            return None
        return create_cloudpayments_provider(
            public_id=settings.public_id,  # type: ignore[arg-type]
            api_secret=settings.api_secret.get_secret_value(),  # type: ignore[union-attr]
            timeout=payments.http_timeout,
        )

    registry.register("yookassa", _yookassa)
    registry.register("cloudpayments", _cloudpayments)

    return registry
