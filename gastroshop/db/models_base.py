"""Базовый класс для всех моделей SQLAlchemy.

Модуль не импортирует настройки: модели можно импортировать в тестах
без чтения .env.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Базовый класс для всех моделей (User, Product, Order, Payment)."""
