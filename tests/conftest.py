"""Pytest fixtures для тестов.

Каждый тест получает свою in-memory SQLite базу. StaticPool держит одно
соединение, поэтому сессии из session_factory (фоновые воркеры, HTTP-слой)
видят те же данные, что и db_session.
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from gastroshop.app.factory import create_app
from gastroshop.config.models import AppSettings, MockPaymentSettings, PaymentsSettings
from gastroshop.config.settings import Settings
from gastroshop.db.base import Base, get_session
from gastroshop.db.models.order import Order, OrderItem
from gastroshop.db.models.product import Product
from gastroshop.db.models.user import User
from gastroshop.db.repositories.order_repo import OrderRepository
from gastroshop.db.repositories.product_repo import ProductRepository
from gastroshop.db.repositories.user_repo import UserRepository
from gastroshop.providers.payments.mock import MockPaymentProvider
from gastroshop.providers.payments.registry import (
    PaymentProviderRegistry,
    create_provider_registry,
)
from gastroshop.services.metrics import MetricsCollector

MOCK_WEBHOOK_SECRET = "test-webhook-secret"  # noqa: S105
TEST_BASE_URL = "http://shop.test"


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Создать тестовый движок БД (in-memory SQLite).

    Yields:
        AsyncEngine для тестов.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий тестовой БД."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Создать тестовую сессию БД.

    Args:
        session_factory: Фабрика сессий тестовой БД.

    Yields:
        AsyncSession для тестов.
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Покупатель с email для уведомлений."""
    user = await UserRepository(db_session).create(email="buyer@example.com", name="Анна")
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_product(db_session: AsyncSession) -> Product:
    """Товар: 50.00 ₽, 10 штук на складе."""
    product = await ProductRepository(db_session).create(
        slug="farm-cottage-cheese",
        title="Творог фермерский",
        price_cents=5000,
        quantity=10,
    )
    await db_session.commit()
    return product


@pytest_asyncio.fixture
async def test_order(db_session: AsyncSession, test_user: User, test_product: Product) -> Order:
    """Заказ на 2 единицы товара, сумма 100.00 ₽, статус pending."""
    order = await OrderRepository(db_session).create(
        user_id=test_user.id,
        items=[OrderItem(product_id=test_product.id, quantity=2, price_cents=5000)],
        shipping_address={"city": "Тверь", "street": "Советская, 1"},
    )
    await db_session.commit()
    return order


@pytest.fixture
def payments_settings() -> PaymentsSettings:
    """Настройки платежей: mock-провайдер с тестовым секретом."""
    return PaymentsSettings(
        provider="mock",
        mock=MockPaymentSettings(webhook_secret=SecretStr(MOCK_WEBHOOK_SECRET)),
    )


@pytest.fixture
def mock_provider() -> MockPaymentProvider:
    """Mock-провайдер с тестовым секретом."""
    return MockPaymentProvider(base_url=TEST_BASE_URL, webhook_secret=MOCK_WEBHOOK_SECRET)


@pytest.fixture
def provider_registry(payments_settings: PaymentsSettings) -> PaymentProviderRegistry:
    """Реестр провайдеров с тестовыми настройками."""
    return create_provider_registry(payments_settings, base_url=TEST_BASE_URL)


@pytest.fixture
def metrics() -> MetricsCollector:
    """Отдельный сборщик счётчиков на каждый тест."""
    return MetricsCollector()


MockWebhookFactory = Callable[..., tuple[bytes, str]]


@pytest.fixture
def make_mock_webhook(mock_provider: MockPaymentProvider) -> MockWebhookFactory:
    """Собрать подписанное уведомление mock-провайдера.

    Returns:
        Функция (payment_id, status, event_id=..., amount=..., order_id=...)
        → (тело, подпись).
    """

    def _make(
        payment_id: str,
        status: str = "succeeded",
        *,
        event_id: str | None = "evt_1",
        amount: str = "100.00",
        order_id: Any = None,
    ) -> tuple[bytes, str]:
        data: dict[str, Any] = {
            "event": f"payment.{status}",
            "object": {
                "id": payment_id,
                "status": status,
                "amount": {"value": amount, "currency": "RUB"},
                "metadata": {"order_id": order_id} if order_id is not None else {},
            },
        }
        if event_id is not None:
            data["id"] = event_id

        payload = json.dumps(data).encode("utf-8")
        return payload, mock_provider.sign(payload)

    return _make


# ==============================================================================
# HTTP-КЛИЕНТ
# ==============================================================================


@pytest.fixture
def test_app(
    payments_settings: PaymentsSettings,
    session_factory: async_sessionmaker[AsyncSession],
    db_session: AsyncSession,
) -> FastAPI:
    """Приложение на тестовой БД с mock-провайдером.

    Lifespan не запускается: воркеры уведомлений стоят,
    задачи только копятся в очереди.
    """
    app_settings = Settings(  # type: ignore[call-arg]
        _env_file=None,
        app=AppSettings(base_url=TEST_BASE_URL),
        payments=payments_settings,
    )
    app = create_app(app_settings, session_factory=session_factory)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client для тестирования API."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    test_app.dependency_overrides.clear()
