"""Тесты для mock-провайдера платежей.

Модуль тестирует:
- create_payment — ID вида mock_{order_id}_{hex} и ссылку на mock-checkout
- validate_webhook — HMAC-SHA256 подпись и разбор уведомления
- get_payment_status — у mock нет внешнего статуса
"""

import json
from collections.abc import Callable

import pytest

from gastroshop.core.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    ProviderError,
)
from gastroshop.db.models.order import Order
from gastroshop.providers.payments.base import ProviderPaymentStatus
from gastroshop.providers.payments.mock import MockPaymentProvider

TEST_BASE_URL = "http://shop.test"

MockWebhookFactory = Callable[..., tuple[bytes, str]]


@pytest.fixture
def order() -> Order:
    """Заказ без БД: mock-провайдеру нужны только id, сумма и валюта."""
    return Order(id=7, amount=10000, currency="RUB", items_json="[]")


# ==============================================================================
# СОЗДАНИЕ ПЛАТЕЖА
# ==============================================================================


class TestMockCreatePayment:
    """Тесты для MockPaymentProvider.create_payment."""

    @pytest.mark.asyncio
    async def test_creates_local_checkout_link(
        self, mock_provider: MockPaymentProvider, order: Order
    ) -> None:
        """ID платежа содержит номер заказа, ссылка ведёт на mock-checkout."""
        intent = await mock_provider.create_payment(order)

        assert intent.payment_id.startswith("mock_7_")
        assert intent.checkout_url == f"{TEST_BASE_URL}/mock-checkout/{intent.payment_id}"
        assert intent.provider == "mock"
        assert intent.amount == 10000
        assert intent.currency == "RUB"
        assert intent.metadata == {"order_id": 7}

    @pytest.mark.asyncio
    async def test_repeat_attempt_gets_new_id(
        self, mock_provider: MockPaymentProvider, order: Order
    ) -> None:
        """Повторный платёж по тому же заказу получает новый ID."""
        first = await mock_provider.create_payment(order)
        second = await mock_provider.create_payment(order)

        assert first.payment_id != second.payment_id
        assert second.payment_id.startswith("mock_7_")

    @pytest.mark.asyncio
    async def test_trailing_slash_in_base_url(self, order: Order) -> None:
        """Завершающий слеш в base_url не даёт двойного слеша в ссылке."""
        provider = MockPaymentProvider(base_url="http://shop.test/", webhook_secret="s")

        intent = await provider.create_payment(order)

        assert intent.checkout_url.startswith("http://shop.test/mock-checkout/")


# ==============================================================================
# WEBHOOK
# ==============================================================================


class TestMockValidateWebhook:
    """Тесты для MockPaymentProvider.validate_webhook."""

    @pytest.mark.asyncio
    async def test_valid_webhook(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Корректная подпись: событие разобрано, сумма в копейках."""
        payload, signature = make_mock_webhook(
            "mock_7_1760000000", event_id="evt_42", order_id="7"
        )

        event = await mock_provider.validate_webhook(payload, signature)

        assert event.payment_id == "mock_7_1760000000"
        assert event.status == ProviderPaymentStatus.SUCCEEDED
        assert event.is_success is True
        assert event.amount_minor_units == 10000
        assert event.currency == "RUB"
        assert event.order_id == 7
        assert event.event_id == "evt_42"
        assert event.provider == "mock"

    @pytest.mark.asyncio
    async def test_signature_case_and_whitespace_ignored(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Hex-подпись в верхнем регистре и с пробелами принимается."""
        payload, signature = make_mock_webhook("mock_7_1")

        event = await mock_provider.validate_webhook(payload, f"  {signature.upper()} ")

        assert event.payment_id == "mock_7_1"

    @pytest.mark.asyncio
    async def test_event_without_id(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Уведомление без поля id: event_id=None."""
        payload, signature = make_mock_webhook("mock_7_1", event_id=None)

        event = await mock_provider.validate_webhook(payload, signature)

        assert event.event_id is None

    @pytest.mark.asyncio
    async def test_unknown_status_passed_through(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Статус, которого нет в словаре, передаётся без изменений."""
        payload, signature = make_mock_webhook("mock_7_1", status="waiting_for_capture")

        event = await mock_provider.validate_webhook(payload, signature)

        assert event.status == "waiting_for_capture"
        assert event.is_success is False

    @pytest.mark.asyncio
    async def test_wrong_signature(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Подпись другим секретом отклоняется."""
        payload, _ = make_mock_webhook("mock_7_1")
        other = MockPaymentProvider(base_url=TEST_BASE_URL, webhook_secret="other-secret")

        with pytest.raises(InvalidSignatureError):
            await mock_provider.validate_webhook(payload, other.sign(payload))

    @pytest.mark.asyncio
    async def test_tampered_payload(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Изменённое после подписи тело отклоняется."""
        payload, signature = make_mock_webhook("mock_7_1", amount="1.00")
        tampered = payload.replace(b'"1.00"', b'"9999.00"')

        with pytest.raises(InvalidSignatureError):
            await mock_provider.validate_webhook(tampered, signature)

    @pytest.mark.asyncio
    async def test_not_json(self, mock_provider: MockPaymentProvider) -> None:
        """Подписанное, но не JSON тело — MalformedPayloadError."""
        payload = b"not a json"

        with pytest.raises(MalformedPayloadError):
            await mock_provider.validate_webhook(payload, mock_provider.sign(payload))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"id": "evt_1"},
            {"id": "evt_1", "object": {"status": "succeeded", "amount": {"value": "1.00"}}},
            {"id": "evt_1", "object": {"id": "mock_1", "amount": {"value": "1.00"}}},
            {"id": "evt_1", "object": {"id": "mock_1", "status": "succeeded"}},
            {
                "id": "evt_1",
                "object": {"id": "mock_1", "status": "succeeded", "amount": {"value": "abc"}},
            },
            {
                "id": "evt_1",
                "object": {
                    "id": "mock_1",
                    "status": "succeeded",
                    "amount": {"value": "1.00"},
                    "metadata": {"order_id": "seven"},
                },
            },
        ],
        ids=[
            "no-object",
            "no-payment-id",
            "no-status",
            "no-amount",
            "bad-amount",
            "bad-order-id",
        ],
    )
    async def test_malformed_body(
        self, mock_provider: MockPaymentProvider, body: dict[str, object]
    ) -> None:
        """Уведомление без обязательных полей отклоняется."""
        payload = json.dumps(body).encode()

        with pytest.raises(MalformedPayloadError):
            await mock_provider.validate_webhook(payload, mock_provider.sign(payload))

    @pytest.mark.asyncio
    async def test_amount_beyond_decimal_precision(
        self, mock_provider: MockPaymentProvider, make_mock_webhook: MockWebhookFactory
    ) -> None:
        """Подписанная сумма 1e30 не переводится в копейки — MalformedPayloadError."""
        payload, signature = make_mock_webhook("mock_7_1", amount="1e30")

        with pytest.raises(MalformedPayloadError, match="Некорректная сумма"):
            await mock_provider.validate_webhook(payload, signature)


class TestMockPaymentStatus:
    """Тесты для MockPaymentProvider.get_payment_status."""

    @pytest.mark.asyncio
    async def test_no_remote_status(self, mock_provider: MockPaymentProvider) -> None:
        """Статус mock-платежа берётся из БД, провайдер его не знает."""
        assert mock_provider.supports_remote_status is False

        with pytest.raises(ProviderError):
            await mock_provider.get_payment_status("mock_7_1")
