"""Тесты для настроек приложения.

Проверяет:
- Значения по умолчанию (mock-провайдер, SQLite, админка выключена)
- Список доступных провайдеров в зависимости от ключей
- Чтение вложенных групп из переменных окружения (PAYMENTS__...)
- Русские сообщения об ошибках конфигурации
"""

import pytest
from pydantic import SecretStr, ValidationError

from gastroshop.config.models import (
    AdminSettings,
    AppSettings,
    CloudPaymentsSettings,
    EmailSettings,
    PaymentsSettings,
    YooKassaSettings,
)
from gastroshop.config.settings import Settings, _format_validation_error


class TestPaymentsSettings:
    """Тесты для PaymentsSettings."""

    def test_defaults(self) -> None:
        """По умолчанию активен mock, остальные провайдеры не настроены."""
        settings = PaymentsSettings()

        assert settings.provider == "mock"
        assert settings.is_known_provider is True
        assert settings.available_providers == ["mock"]
        assert settings.yookassa.is_configured is False
        assert settings.cloudpayments.is_configured is False

    def test_unknown_provider(self) -> None:
        """Неизвестный провайдер не считается поддерживаемым."""
        assert PaymentsSettings(provider="stripe").is_known_provider is False

    def test_available_providers_with_keys(self) -> None:
        """Провайдер с ключами попадает в список доступных."""
        settings = PaymentsSettings(
            yookassa=YooKassaSettings(shop_id="123", secret_key=SecretStr("key")),
            cloudpayments=CloudPaymentsSettings(public_id="pk_1", api_secret=SecretStr("s")),
        )

        assert settings.available_providers == ["mock", "yookassa", "cloudpayments"]

    def test_half_configured_yookassa(self) -> None:
        """Без секретного ключа YooKassa не настроен."""
        assert YooKassaSettings(shop_id="123").is_configured is False


class TestOtherSettings:
    """Тесты для остальных групп настроек."""

    def test_normalized_base_url(self) -> None:
        """Завершающий слеш отбрасывается."""
        assert AppSettings(base_url="https://shop.example.com/").normalized_base_url == (
            "https://shop.example.com"
        )

    def test_admin_enabled_only_with_credentials(self) -> None:
        """Админка включается только при логине и пароле."""
        assert AdminSettings().is_enabled is False
        assert AdminSettings(username="admin").is_enabled is False
        assert AdminSettings(username="admin", password=SecretStr("pw")).is_enabled is True

    def test_email_configured(self) -> None:
        """Почта настроена при указанных хосте и отправителе."""
        assert EmailSettings().is_configured is False
        assert EmailSettings(smtp_host="smtp.example.com").is_configured is False
        assert EmailSettings(
            smtp_host="smtp.example.com", smtp_from="shop@example.com"
        ).is_configured is True


class TestSettingsFromEnv:
    """Тесты загрузки настроек из переменных окружения."""

    def test_nested_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Вложенные группы читаются через двойное подчёркивание."""
        monkeypatch.setenv("PAYMENTS__PROVIDER", "yookassa")
        monkeypatch.setenv("PAYMENTS__YOOKASSA__SHOP_ID", "123456")
        monkeypatch.setenv("PAYMENTS__YOOKASSA__SECRET_KEY", "test_secret")
        monkeypatch.setenv("NOTIFICATIONS__WORKERS", "4")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.payments.provider == "yookassa"
        assert settings.payments.yookassa.shop_id == "123456"
        assert settings.payments.yookassa.secret_key is not None
        assert settings.payments.yookassa.secret_key.get_secret_value() == "test_secret"
        assert settings.notifications.workers == 4

    def test_known_field_error_message(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Для известных полей выводится подсказка по переменной."""
        monkeypatch.setenv("EMAIL__SMTP_PORT", "not-a-port")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)  # type: ignore[call-arg]

        message = _format_validation_error(exc_info.value)
        assert "EMAIL__SMTP_PORT должен быть числом" in message

    def test_unknown_field_error_message(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Для прочих полей выводится путь и текст ошибки."""
        monkeypatch.setenv("NOTIFICATIONS__MAX_ATTEMPTS", "many")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)  # type: ignore[call-arg]

        message = _format_validation_error(exc_info.value)
        assert "Ошибка конфигурации" in message
        assert "notifications.max_attempts" in message
