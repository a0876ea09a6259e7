"""Точка входа в приложение.

Команда запуска:
    uvicorn gastroshop.main:app --host 0.0.0.0 --port 3001

Или через python:
    python -m gastroshop
"""

import logging

from gastroshop.app import create_app
from gastroshop.config.settings import settings
from gastroshop.utils.logging import setup_logging

# Настраиваем логирование при импорте модуля
setup_logging(
    level=settings.logging.level,
    timezone_name=settings.logging.timezone,
)

_logger = logging.getLogger(__name__)
_logger.info("Gastroshop: логирование настроено, загрузка приложения")

app = create_app(settings)
