"""Factory для создания FastAPI приложения.

Функция create_app() создаёт и настраивает FastAPI app:
- Создаёт сборщик счётчиков, реестр провайдеров и очередь уведомлений
  и кладёт их в app.state
- Подключает все роутеры (payments, webhooks, admin, health)
- Настраивает админку, CORS и счётчик запросов
- Подключает lifecycle manager
"""

import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.sessions import SessionMiddleware

from gastroshop import __version__
from gastroshop.admin import setup_admin
from gastroshop.admin.auth import get_admin_secret_key
from gastroshop.api import admin_router, health_router, payments_router, webhooks_router
from gastroshop.app.lifecycle import ApplicationLifecycle
from gastroshop.config.settings import Settings
from gastroshop.providers.payments.registry import create_provider_registry
from gastroshop.services.email_service import EmailService
from gastroshop.services.metrics import MetricsCollector
from gastroshop.services.notification_service import NotificationDispatcher
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

# Маршрут для запросов, не попавших ни в один роутер
UNMATCHED_ROUTE = "<unmatched>"


def create_app(
    app_settings: Settings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Создать и настроить FastAPI приложение.

    Args:
        app_settings: Настройки. По умолчанию — загруженные из окружения.
        session_factory: Фабрика сессий для фоновых воркеров
            (в тестах — фабрика тестовой БД).

    Returns:
        Настроенное FastAPI приложение готовое к запуску
    """
    if app_settings is None:
        from gastroshop.config.settings import settings

        app_settings = settings

    metrics = MetricsCollector()
    providers = create_provider_registry(
        app_settings.payments, base_url=app_settings.app.normalized_base_url
    )
    notifier = NotificationDispatcher(
        EmailService(app_settings.email),
        session_factory=session_factory,
        settings=app_settings.notifications,
        metrics=metrics,
    )

    lifecycle = ApplicationLifecycle(app_settings, providers, notifier)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Управление жизненным циклом приложения.

        Yields:
            None: Приложение работает между startup и shutdown
        """
        await lifecycle.startup()

        yield

        await lifecycle.shutdown()

    app = FastAPI(
        title="Gastroshop",
        description="Платежи и заказы магазина фермерских продуктов",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.metrics = metrics
    app.state.providers = providers
    app.state.notifier = notifier

    @app.middleware("http")
    async def count_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Учесть запрос и его длительность (по шаблону маршрута, а не по URL).

        Если обработчик упал с исключением, запрос учитывается со статусом 500.
        """
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            route_path = getattr(route, "path", UNMATCHED_ROUTE)
            metrics.record_request(
                request.method,
                route_path,
                status_code,
                time.perf_counter() - started,
            )

    # Админка доступна по адресу /admin если заданы ADMIN__USERNAME и ADMIN__PASSWORD
    setup_admin(app, app_settings)

    # SessionMiddleware нужен admin API (/api/admin/...) для тех же cookie-сессий,
    # что использует SQLAdmin (/admin).
    if app_settings.admin.is_enabled:
        app.add_middleware(
            SessionMiddleware,
            secret_key=get_admin_secret_key(app_settings.admin),
        )

    # Порядок middleware обратный: последний добавленный выполняется первым.
    if app_settings.cors.is_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors.allow_origins,
            allow_credentials=app_settings.cors.allow_credentials,
            allow_methods=app_settings.cors.allow_methods,
            allow_headers=app_settings.cors.allow_headers,
        )
        logger.info(
            "CORS включён для доменов: %s",
            ", ".join(app_settings.cors.allow_origins),
        )

    # /api/payments/create, /webhook, /status/{id}, /mock/complete
    app.include_router(payments_router)

    # /api/webhooks/{provider}
    app.include_router(webhooks_router)

    # /api/admin/orders/{id}/status
    app.include_router(admin_router)

    # /health, /metrics
    app.include_router(health_router)

    return app
