"""Настройка и монтирование админки к FastAPI.

Админка монтируется только если настроены ADMIN__USERNAME и ADMIN__PASSWORD.
Если они не заданы — админка недоступна (возвращается 404).
"""

from fastapi import FastAPI
from sqladmin import Admin

from gastroshop.admin.auth import get_admin_auth
from gastroshop.admin.views import OrderAdmin, PaymentAdmin, ProductAdmin, UserAdmin
from gastroshop.config.settings import Settings
from gastroshop.db.base import get_sync_engine
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)


def setup_admin(app: FastAPI, app_settings: Settings) -> Admin | None:
    """Настроить и подключить админку к FastAPI.

    Args:
        app: FastAPI приложение.
        app_settings: Настройки приложения.

    Returns:
        Объект Admin если админка включена, None если отключена.
    """
    if not app_settings.admin.is_enabled:
        logger.info("Админка отключена (не заданы ADMIN__USERNAME и ADMIN__PASSWORD)")
        return None

    admin = Admin(
        app=app,
        engine=get_sync_engine(),
        authentication_backend=get_admin_auth(app_settings.admin),
        title="Gastroshop Admin",
    )

    admin.add_view(OrderAdmin)
    admin.add_view(PaymentAdmin)
    admin.add_view(ProductAdmin)
    admin.add_view(UserAdmin)

    logger.info("Админка доступна: %s/admin", app_settings.app.normalized_base_url)
    return admin
