"""Модуль базы данных.

- base.py — подключение к БД (engine, сессии)
- models_base.py — декларативная база для моделей (без загрузки settings)
- models/ — модели SQLAlchemy
- repositories/ — репозитории
- migrations.py — проверка актуальности миграций Alembic при старте

Runtime-доступ к БД:
    from gastroshop.db.base import DatabaseSession, get_session
"""
