"""Аутентификация для веб-админки.

Простая аутентификация по логину/паролю из переменных окружения.
Данные сессии хранятся в signed cookies (защищены от подделки).
"""

import secrets

from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request
from typing_extensions import override

from gastroshop.config.models import AdminSettings
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_KEY = "admin_authenticated"


class AdminAuth(AuthenticationBackend):
    """Backend аутентификации для SQLAdmin.

    Проверяет логин и пароль из настроек приложения.
    Сессия хранится в cookie с подписью (itsdangerous).
    """

    def __init__(self, secret_key: str, admin_settings: AdminSettings) -> None:
        """Создать backend.

        Args:
            secret_key: Ключ подписи cookie сессии.
            admin_settings: Логин и пароль администратора.
        """
        super().__init__(secret_key=secret_key)
        self._admin_settings = admin_settings

    @override
    async def login(self, request: Request) -> bool:
        """Обработать форму входа.

        Returns:
            True если вход успешен, False если нет.
        """
        if not self._admin_settings.is_enabled:
            return False

        form = await request.form()
        username = form.get("username")
        password = form.get("password")

        # compare_digest для защиты от timing attacks
        username_valid = secrets.compare_digest(
            str(username or ""),
            self._admin_settings.username or "",
        )
        expected_password = ""
        if self._admin_settings.password:
            expected_password = self._admin_settings.password.get_secret_value()

        password_valid = secrets.compare_digest(str(password or ""), expected_password)

        if username_valid and password_valid:
            request.session.update({SESSION_KEY: True})
            logger.info("Успешный вход в админку")
            return True

        logger.warning("Неудачная попытка входа в админку")
        return False

    @override
    async def logout(self, request: Request) -> bool:
        """Выйти из админки."""
        request.session.clear()
        return True

    @override
    async def authenticate(self, request: Request) -> bool:
        """Проверить, авторизован ли пользователь."""
        if "session" not in request.scope:
            return False
        return bool(request.session.get(SESSION_KEY, False))


def get_admin_secret_key(admin_settings: AdminSettings) -> str:
    """Получить секретный ключ для сессий админки.

    При автогенерации ключ меняется при каждом перезапуске —
    все сессии станут невалидными.
    """
    if admin_settings.secret_key:
        return admin_settings.secret_key.get_secret_value()
    return secrets.token_urlsafe(32)


def get_admin_auth(admin_settings: AdminSettings | None = None) -> AdminAuth:
    """Создать backend аутентификации.

    Args:
        admin_settings: Настройки админки. По умолчанию — из окружения.

    Returns:
        Настроенный AuthenticationBackend.
    """
    if admin_settings is None:
        from gastroshop.config.settings import settings

        admin_settings = settings.admin

    return AdminAuth(
        secret_key=get_admin_secret_key(admin_settings),
        admin_settings=admin_settings,
    )
