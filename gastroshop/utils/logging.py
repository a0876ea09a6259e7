"""Настройка логирования.

Два канала вывода:
1. Консоль (stdout) с цветной подсветкой уровней
2. Файл с ротацией (data/logs/app.log)

Компактный формат логов:
    26-10-19 21:55:46 | INFO | services.payment_service | Сообщение
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler

from typing_extensions import override

from gastroshop.config.constants import DATA_DIR
from gastroshop.utils.timezone import get_timezone

LOGS_DIR = DATA_DIR / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%y-%m-%d %H:%M:%S"


class AnsiColors:
    """ANSI escape-коды для цветного вывода в терминале."""

    RESET = "\033[0m"

    DEBUG = "\033[36m"  # cyan
    INFO = "\033[32m"  # green
    WARNING = "\033[33m"  # yellow
    ERROR = "\033[31m"  # red
    CRITICAL = "\033[35m"  # magenta


LEVEL_COLORS: dict[str, str] = {
    "DEBUG": AnsiColors.DEBUG,
    "INFO": AnsiColors.INFO,
    "WARNING": AnsiColors.WARNING,
    "ERROR": AnsiColors.ERROR,
    "CRITICAL": AnsiColors.CRITICAL,
}


class TimezoneFormatter(logging.Formatter):
    """Форматтер логов с поддержкой часового пояса.

    Стандартный logging.Formatter берёт локальное время системы,
    а в контейнере это почти всегда UTC.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "Europe/Moscow",
    ) -> None:
        """Инициализировать форматтер.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
        """
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)

    @override
    def formatTime(
        self,
        record: logging.LogRecord,
        datefmt: str | None = None,
    ) -> str:
        """Отформатировать время записи в настроенном часовом поясе."""
        dt = datetime.fromtimestamp(record.created, tz=self.timezone)

        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime(self.default_time_format)


class ColoredFormatter(TimezoneFormatter):
    """Форматтер с цветной подсветкой уровней.

    Убирает префикс "gastroshop." из имени логгера:
    gastroshop.services.payment_service → services.payment_service
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "Europe/Moscow",
        use_colors: bool = True,
    ) -> None:
        """Инициализировать форматтер с цветами.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
            use_colors: Использовать ли цветную подсветку.
        """
        super().__init__(fmt, datefmt, timezone_name)
        self.use_colors = use_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Отформатировать запись лога с цветной подсветкой уровня."""
        original_name = record.name
        record.name = record.name.removeprefix("gastroshop.")
        formatted = super().format(record)
        # Имя восстанавливаем для остальных handler-ов
        record.name = original_name

        if not self.use_colors:
            return formatted

        level_color = LEVEL_COLORS.get(record.levelname, "")
        if level_color:
            colored_level = f"{level_color}{record.levelname}{AnsiColors.RESET}"
            formatted = formatted.replace(
                f"| {record.levelname} |",
                f"| {colored_level} |",
            )

        return formatted


def _should_use_colors() -> bool:
    """Определить, поддерживает ли терминал цвета.

    Учитывает NO_COLOR (https://no-color.org/) и то, что stdout является tty.
    """
    if os.environ.get("NO_COLOR"):
        return False

    return sys.stdout.isatty()


def setup_logging(level: str = "INFO", timezone_name: str = "Europe/Moscow") -> None:
    """Настроить логирование приложения.

    Логи выводятся в консоль и в файл data/logs/app.log
    (максимум 5 МБ, 3 резервных копии). Логи uvicorn переводятся
    на тот же формат.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для отображения времени в логах.
    """
    LOGS_DIR.mkdir(parents=True, exist_ok=True)

    console_formatter = ColoredFormatter(
        LOG_FORMAT,
        datefmt=DATE_FORMAT,
        timezone_name=timezone_name,
        use_colors=_should_use_colors(),
    )
    file_formatter = TimezoneFormatter(
        LOG_FORMAT, datefmt=DATE_FORMAT, timezone_name=timezone_name
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        LOGS_DIR / "app.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    # uvicorn.error: startup/shutdown, uvicorn.access: HTTP-запросы
    for name in ("uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [console_handler, file_handler]
        uvicorn_logger.propagate = False

    uvicorn_root = logging.getLogger("uvicorn")
    uvicorn_root.handlers = []
    uvicorn_root.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с указанным именем.

    Args:
        name: Имя логгера (обычно __name__).

    Returns:
        Настроенный экземпляр логгера.
    """
    return logging.getLogger(name)
