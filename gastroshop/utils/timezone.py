"""Утилиты для работы с часовыми поясами.

Время в базе данных хранится в UTC. В логах и админке оно показывается
в часовом поясе из LOGGING__TIMEZONE.
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Получить объект часового пояса по имени.

    Args:
        timezone_name: Название часового пояса из базы IANA
            ("Europe/Moscow", "UTC").

    Returns:
        Объект ZoneInfo для указанного часового пояса.

    Raises:
        ZoneInfoNotFoundError: Если указанный часовой пояс не найден.
    """
    return ZoneInfo(timezone_name)


def utc_now() -> datetime:
    """Текущее время в UTC (aware)."""
    return datetime.now(UTC)


def to_timezone(dt: datetime, timezone_name: str) -> datetime:
    """Конвертировать время в указанный часовой пояс.

    Naive datetime (SQLite возвращает именно такие) считается UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(get_timezone(timezone_name))


def format_datetime(
    dt: datetime | None,
    timezone_name: str,
    fmt: str = "%d.%m.%Y %H:%M",
) -> str:
    """Отформатировать время в указанном часовом поясе.

    Args:
        dt: Время для форматирования. Если None — возвращает "-".
        timezone_name: Название часового пояса для отображения.
        fmt: Формат вывода (по умолчанию: "ДД.ММ.ГГГГ ЧЧ:ММ").

    Returns:
        Отформатированная строка с временем или "-" если dt is None.
    """
    if dt is None:
        return "-"

    return to_timezone(dt, timezone_name).strftime(fmt)
