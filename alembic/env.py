"""Конфигурация Alembic для миграций базы данных.

Этот файл запускается каждый раз при выполнении команд alembic.
Настроен для работы с async SQLAlchemy (asyncpg, aiosqlite).

Как работают миграции:
1. Разработчик меняет модели (gastroshop/db/models/*.py)
2. Запускает: alembic revision --autogenerate -m "описание"
3. Alembic сравнивает модели с БД и генерирует миграцию
4. Разработчик проверяет миграцию и запускает: alembic upgrade head
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy.engine import Connection

from alembic import context

# Импортируем модели, чтобы Alembic знал о таблицах
from gastroshop.db.base import Base, get_engine
from gastroshop.db.models import Order, Payment, Product, User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata моделей: Alembic использует для сравнения с БД
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Выполнить миграции в 'offline' режиме.

    Генерация SQL без подключения к БД:
    alembic upgrade head --sql > migration.sql
    """
    url = str(get_engine().url)
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Выполнить миграции с использованием соединения.

    Args:
        connection: Синхронное соединение SQLAlchemy.
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        # SQLite не умеет ALTER COLUMN, batch-режим пересоздаёт таблицу
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Выполнить миграции в async режиме.

    Alembic не поддерживает async напрямую, поэтому миграции
    выполняются через run_sync() на async-соединении.
    """
    print("Подключение к базе данных...", flush=True)

    engine = get_engine()

    try:
        print("Применение миграций...", flush=True)
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
            await connection.commit()

        print("✅ Миграции успешно применены!", flush=True)
    finally:
        await engine.dispose()


def run_migrations_online() -> None:
    """Выполнить миграции в 'online' режиме (alembic upgrade head)."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
