"""Проверка статуса миграций базы данных.

При старте приложения сравниваем ревизию в таблице alembic_version
с head-ревизией из alembic/versions и предупреждаем, если схема отстала.
"""

from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
ALEMBIC_INI = PROJECT_ROOT / "alembic.ini"
ALEMBIC_DIR = PROJECT_ROOT / "alembic"


def get_head_revision() -> str | None:
    """Получить последнюю ревизию из файлов миграций.

    Returns:
        ID head-ревизии или None, если миграций нет.
    """
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    return ScriptDirectory.from_config(config).get_current_head()


def _read_revision(connection: Connection) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()


async def get_current_revision(engine: AsyncEngine) -> str | None:
    """Получить текущую ревизию из базы данных.

    Returns:
        ID текущей ревизии или None, если миграции не применялись.
    """
    async with engine.connect() as conn:
        return await conn.run_sync(_read_revision)


async def check_migrations(engine: AsyncEngine) -> None:
    """Проверить статус миграций и вывести предупреждение если нужно.

    Args:
        engine: Асинхронный SQLAlchemy engine.
    """
    head_revision = get_head_revision()
    current_revision = await get_current_revision(engine)

    if head_revision is None:
        logger.warning("Файлы миграций не найдены в %s", ALEMBIC_DIR / "versions")
        return

    if current_revision is None:
        logger.warning(
            "Миграции не применены, база данных не инициализирована. "
            "Выполните: alembic upgrade head"
        )
        return

    if current_revision != head_revision:
        logger.warning(
            "Миграции не актуальны: в БД %s, последняя %s. "
            "Выполните: alembic upgrade head",
            current_revision,
            head_revision,
        )
        return

    logger.debug("Миграции актуальны (ревизия: %s)", current_revision)
