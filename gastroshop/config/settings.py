"""Настройки приложения через переменные окружения.

ВАЖНО: Этот модуль загружает настройки из .env файла при импорте.
Для использования только классов настроек (без загрузки .env)
импортируйте из gastroshop.config.models.
"""

import sys
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from gastroshop.config.models import (
    AdminSettings,
    AppSettings,
    CloudPaymentsSettings,
    CORSSettings,
    DatabaseSettings,
    EmailSettings,
    LoggingSettings,
    MockPaymentSettings,
    NotificationSettings,
    PaymentsSettings,
    YooKassaSettings,
)

# gastroshop/config/settings.py → gastroshop/config → gastroshop → корень проекта
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

# Без .env настройки читаются только из переменных окружения (контейнеры, CI)
ENV_FILE_PATH = ENV_FILE if ENV_FILE.exists() else None

__all__ = [
    "AdminSettings",
    "AppSettings",
    "CORSSettings",
    "CloudPaymentsSettings",
    "DatabaseSettings",
    "EmailSettings",
    "LoggingSettings",
    "MockPaymentSettings",
    "NotificationSettings",
    "PaymentsSettings",
    "Settings",
    "YooKassaSettings",
    "load_settings",
    "settings",
]

# ==============================================================================
# СЛОВАРЬ ОШИБОК НА РУССКОМ ЯЗЫКЕ
# ==============================================================================
#
# Ключ: путь к полю ("payments.provider"), значение: подсказка, как исправить.

FIELD_ERROR_MESSAGES: dict[str, str] = {
    "payments.http_timeout": "PAYMENTS__HTTP_TIMEOUT должен быть числом секунд",
    "email.smtp_port": "EMAIL__SMTP_PORT должен быть числом (обычно 587 или 465)",
    "notifications.workers": "NOTIFICATIONS__WORKERS должен быть целым числом",
}

DEFAULT_ERROR_MESSAGE = "Ошибка конфигурации. Проверьте файл .env или переменные окружения"


class Settings(BaseSettings):
    """Главные настройки приложения.

    Источники (в порядке приоритета):
    1. Переменные окружения
    2. Файл .env (если существует)

    Вложенные группы разделяются двойным подчёркиванием:
    PAYMENTS__YOOKASSA__SHOP_ID, EMAIL__SMTP_HOST и т.д.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    admin: AdminSettings = AdminSettings()
    cors: CORSSettings = CORSSettings()
    payments: PaymentsSettings = PaymentsSettings()
    email: EmailSettings = EmailSettings()
    notifications: NotificationSettings = NotificationSettings()


def _format_validation_error(error: ValidationError) -> str:
    """Преобразовать ошибку Pydantic в понятное русское сообщение.

    Args:
        error: Ошибка валидации от Pydantic.

    Returns:
        Понятное сообщение на русском языке.
    """
    messages: list[str] = []

    for err in error.errors():
        field_path = ".".join(str(loc) for loc in err["loc"])

        if field_path in FIELD_ERROR_MESSAGES:
            messages.append(FIELD_ERROR_MESSAGES[field_path])
        else:
            messages.append(DEFAULT_ERROR_MESSAGE)
            messages.append(f"Поле: {field_path}")
            messages.append(f"Тип ошибки: {err['type']}")
            messages.append(f"Сообщение: {err['msg']}")

    return "\n".join(messages)


def load_settings() -> Settings:
    """Загрузить настройки из переменных окружения.

    Если настройки некорректны — выводит понятную ошибку на русском
    и завершает программу.

    Returns:
        Объект Settings с загруженными настройками.
    """
    try:
        return Settings()
    except ValidationError as e:
        print(_format_validation_error(e), file=sys.stderr)
        sys.exit(1)


# Загружаем настройки при импорте модуля.
settings = load_settings()
