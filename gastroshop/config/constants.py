"""Константы приложения."""

from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Папка для данных (SQLite-база, логи).
# В контейнере монтируется том /data, локально: ./data в корне проекта.
_CONTAINER_DATA = Path("/data")
DATA_DIR = _CONTAINER_DATA if _CONTAINER_DATA.exists() else PROJECT_ROOT / "data"

DATA_DIR.mkdir(parents=True, exist_ok=True)

# ==============================================================================
# ДЕНЬГИ
# ==============================================================================

# Валюта магазина по умолчанию (ISO 4217)
DEFAULT_CURRENCY = "RUB"

# Количество минорных единиц в одной основной (копеек в рубле)
MINOR_UNITS_PER_MAJOR = 100
