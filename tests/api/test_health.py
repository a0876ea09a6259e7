"""Тесты для служебных эндпоинтов /health и /metrics."""

from collections.abc import Callable

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from gastroshop.db.models.order import Order
from gastroshop.services.metrics import PaymentEvent

MockWebhookFactory = Callable[..., tuple[bytes, str]]


class TestHealth:
    """Тесты для GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        """Сервис отвечает ok."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestMetrics:
    """Тесты для GET /metrics."""

    @pytest.mark.asyncio
    async def test_prometheus_format(self, client: AsyncClient) -> None:
        """Метрики отдаются в текстовом формате Prometheus."""
        await client.get("/health")

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'http_requests_total{endpoint="/health",method="GET",status="200"} 1.0' in (
            response.text
        )
        assert "http_request_duration_seconds_bucket" in response.text

    @pytest.mark.asyncio
    async def test_counts_requests_by_route(self, client: AsyncClient, test_app: FastAPI) -> None:
        """Запросы учитываются по шаблону маршрута."""
        await client.get("/api/payments/status/mock_1_1")
        await client.get("/api/payments/status/mock_2_2")

        metrics = test_app.state.metrics
        assert metrics.request_count("GET", "/api/payments/status/{payment_id}", 404) == 2
        duration_count = metrics.registry.get_sample_value(
            "http_request_duration_seconds_count",
            {"method": "GET", "endpoint": "/api/payments/status/{payment_id}"},
        )
        assert duration_count == 2

    @pytest.mark.asyncio
    async def test_failed_handler_counted_as_500(
        self, client: AsyncClient, test_app: FastAPI
    ) -> None:
        """Исключение в обработчике учитывается как ответ 500."""

        async def broken() -> None:
            raise RuntimeError("boom")

        test_app.add_api_route("/broken", broken)

        with pytest.raises(RuntimeError, match="boom"):
            await client.get("/broken")

        assert test_app.state.metrics.request_count("GET", "/broken", 500) == 1

    @pytest.mark.asyncio
    async def test_counts_payment_events(
        self,
        client: AsyncClient,
        test_app: FastAPI,
        test_order: Order,
        make_mock_webhook: MockWebhookFactory,
    ) -> None:
        """Созданный платёж и обработанный webhook попадают в счётчики."""
        created = await client.post("/api/payments/create", json={"order_id": test_order.id})
        payment_id = created.json()["payment_id"]
        payload, signature = make_mock_webhook(payment_id)
        await client.post(
            "/api/payments/webhook", content=payload, headers={"X-Signature": signature}
        )
        await client.post(
            "/api/payments/webhook", content=payload, headers={"X-Signature": "bad"}
        )

        metrics = test_app.state.metrics
        assert metrics.count(PaymentEvent.PAYMENT_CREATED, "mock") == 1
        assert metrics.count(PaymentEvent.WEBHOOK_PROCESSED, "mock") == 1
        assert metrics.count(PaymentEvent.WEBHOOK_REJECTED, "mock") == 1

        text = (await client.get("/metrics")).text
        assert 'payment_events_total{event="payments_created",provider="mock"} 1.0' in text
