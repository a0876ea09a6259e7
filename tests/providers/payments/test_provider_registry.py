"""Тесты для реестра платёжных провайдеров."""

import pytest
from pydantic import SecretStr

from gastroshop.config.models import (
    CloudPaymentsSettings,
    PaymentsSettings,
    YooKassaSettings,
)
from gastroshop.core.exceptions import UnsupportedProviderError
from gastroshop.providers.payments.base import BasePaymentProvider
from gastroshop.providers.payments.cloudpayments import CloudPaymentsProvider
from gastroshop.providers.payments.mock import MockPaymentProvider
from gastroshop.providers.payments.registry import (
    PaymentProviderRegistry,
    create_provider_registry,
)
from gastroshop.providers.payments.yookassa import YooKassaProvider


class TestCreateProviderRegistry:
    """Тесты для create_provider_registry."""

    def test_all_providers_registered(self, provider_registry: PaymentProviderRegistry) -> None:
        """Зарегистрированы mock, yookassa и cloudpayments."""
        assert provider_registry.list_providers() == ["cloudpayments", "mock", "yookassa"]

    def test_mock_always_available(self, provider_registry: PaymentProviderRegistry) -> None:
        """Mock не требует настроек."""
        assert isinstance(provider_registry.get("mock"), MockPaymentProvider)

    def test_instance_is_cached(self, provider_registry: PaymentProviderRegistry) -> None:
        """Повторный get возвращает тот же экземпляр."""
        assert provider_registry.get("mock") is provider_registry.get("mock")

    @pytest.mark.parametrize("name", ["yookassa", "cloudpayments"])
    def test_unconfigured_provider(
        self, provider_registry: PaymentProviderRegistry, name: str
    ) -> None:
        """Провайдер без ключей — UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError) as exc_info:
            provider_registry.get(name)

        assert exc_info.value.provider == name

    def test_unknown_provider(self, provider_registry: PaymentProviderRegistry) -> None:
        """Неизвестное имя — UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError):
            provider_registry.get("paypal")

    def test_configured_providers(self) -> None:
        """При наличии ключей создаются реальные провайдеры."""
        payments = PaymentsSettings(
            provider="yookassa",
            yookassa=YooKassaSettings(shop_id="123", secret_key=SecretStr("key")),
            cloudpayments=CloudPaymentsSettings(
                public_id="pk_1", api_secret=SecretStr("secret")
            ),
        )

        registry = create_provider_registry(payments, base_url="https://shop.test")

        assert isinstance(registry.get("yookassa"), YooKassaProvider)
        assert isinstance(registry.get("cloudpayments"), CloudPaymentsProvider)

    def test_yookassa_settings_passed(self) -> None:
        """Режим магазина и адрес уведомлений берутся из настроек."""
        payments = PaymentsSettings(
            yookassa=YooKassaSettings(
                shop_id="123",
                secret_key=SecretStr("live_key"),
                test_mode=False,
                webhook_url="https://hooks.shop.test/yookassa",
            ),
        )

        provider = create_provider_registry(payments, base_url="https://shop.test").get(
            "yookassa"
        )

        assert isinstance(provider, YooKassaProvider)
        assert provider.test_mode is False
        assert provider.webhook_url == "https://hooks.shop.test/yookassa"


class TestPaymentProviderRegistry:
    """Тесты для регистрации и закрытия провайдеров."""

    @pytest.mark.asyncio
    async def test_register_and_close(self) -> None:
        """Закрытие реестра закрывает созданные провайдеры и сбрасывает кэш."""
        closed: list[str] = []

        class ClosingProvider(MockPaymentProvider):
            async def close(self) -> None:
                closed.append(self.provider_name)

        registry = PaymentProviderRegistry()
        registry.register(
            "mock",
            lambda: ClosingProvider(base_url="http://shop.test", webhook_secret="s"),
        )
        first: BasePaymentProvider = registry.get("mock")

        await registry.close()

        assert closed == ["mock"]
        assert registry.get("mock") is not first

    def test_reregister_drops_cached_instance(self, mock_provider: MockPaymentProvider) -> None:
        """Повторная регистрация заменяет закэшированный экземпляр."""
        registry = PaymentProviderRegistry()
        registry.register("mock", lambda: mock_provider)
        registry.get("mock")

        replacement = MockPaymentProvider(base_url="http://other.test", webhook_secret="s")
        registry.register("mock", lambda: replacement)

        assert registry.get("mock") is replacement
