"""Тесты для admin API endpoints.

Модуль тестирует:
- POST /api/admin/orders/{id}/status — ручная смена статуса заказа
- Проверка админ-аутентификации
- Валидация статусов и переходов
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from gastroshop.api.admin import require_admin_auth
from gastroshop.api.admin import router as admin_router
from gastroshop.config.models import AdminSettings
from gastroshop.config.settings import Settings
from gastroshop.db.base import get_session
from gastroshop.db.models.order import Order, OrderStatus
from gastroshop.db.repositories.order_repo import OrderRepository


@pytest.fixture
def admin_app(db_session: AsyncSession) -> FastAPI:
    """FastAPI app с admin router и включённой админкой.

    Args:
        db_session: Database session.

    Returns:
        FastAPI приложение с cookie-сессиями.
    """
    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="test-secret-key")  # noqa: S106
    app.include_router(admin_router)
    app.state.settings = Settings(  # type: ignore[call-arg]
        _env_file=None,
        admin=AdminSettings(username="admin", password=SecretStr("admin-password")),
    )

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def admin_client(admin_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client для admin API.

    Args:
        admin_app: FastAPI приложение.

    Yields:
        AsyncClient для отправки запросов.
    """
    transport = ASGITransport(app=admin_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestAdminAuth:
    """Тесты проверки аутентификации."""

    @pytest.mark.asyncio
    async def test_requires_session(self, admin_client: AsyncClient, test_order: Order) -> None:
        """Без входа в админку — 401, статус не меняется."""
        response = await admin_client.post(
            f"/api/admin/orders/{test_order.id}/status", json={"status": "paid"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Admin authentication required"
        assert test_order.status == OrderStatus.PENDING


class TestChangeOrderStatus:
    """Тесты для POST /api/admin/orders/{id}/status."""

    @pytest.fixture(autouse=True)
    def _authorized(self, admin_app: FastAPI) -> None:
        """Считать запросы авторизованными."""
        admin_app.dependency_overrides[require_admin_auth] = lambda: None

    @pytest.mark.asyncio
    async def test_pending_to_paid(self, admin_client: AsyncClient, test_order: Order) -> None:
        """Разрешённый переход выполняется."""
        response = await admin_client.post(
            f"/api/admin/orders/{test_order.id}/status", json={"status": "paid"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "order_id": test_order.id,
            "status": "paid",
            "message": f"Статус заказа #{test_order.id} изменён на paid",
        }
        assert test_order.status == OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_shipping_flow(
        self, admin_client: AsyncClient, db_session: AsyncSession, test_order: Order
    ) -> None:
        """Оплаченный заказ отправляется и доставляется."""
        await OrderRepository(db_session).update_status(test_order.id, OrderStatus.PAID)
        await db_session.commit()

        for status in ("shipped", "delivered"):
            response = await admin_client.post(
                f"/api/admin/orders/{test_order.id}/status", json={"status": status}
            )
            assert response.status_code == 200

        assert test_order.status == OrderStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_forbidden_transition(
        self, admin_client: AsyncClient, test_order: Order
    ) -> None:
        """Переход pending → delivered запрещён — 400."""
        response = await admin_client.post(
            f"/api/admin/orders/{test_order.id}/status", json={"status": "delivered"}
        )

        assert response.status_code == 400
        assert test_order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_status(self, admin_client: AsyncClient, test_order: Order) -> None:
        """Неизвестный статус отклоняется валидацией."""
        response = await admin_client.post(
            f"/api/admin/orders/{test_order.id}/status", json={"status": "lost"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_order_not_found(self, admin_client: AsyncClient) -> None:
        """Несуществующий заказ — 404."""
        response = await admin_client.post(
            "/api/admin/orders/999/status", json={"status": "paid"}
        )

        assert response.status_code == 404
