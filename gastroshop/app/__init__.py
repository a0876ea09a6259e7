"""Модуль приложения.

Содержит factory для создания FastAPI app и lifecycle management.
"""

from gastroshop.app.factory import create_app
from gastroshop.app.lifecycle import ApplicationLifecycle

__all__ = [
    "ApplicationLifecycle",
    "create_app",
]
