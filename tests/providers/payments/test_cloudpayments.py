"""Тесты для провайдера CloudPayments.

Модуль тестирует:
- create_payment — создание счёта через /orders/create
- validate_webhook — Content-HMAC (base64), form-urlencoded и JSON уведомления
- get_payment_status — статус unknown
"""

import base64
import hashlib
import hmac
import json
from collections.abc import Callable
from urllib.parse import urlencode

import httpx
import pytest

from gastroshop.core.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    ProviderError,
)
from gastroshop.db.models.order import Order
from gastroshop.providers.payments.base import ProviderPaymentStatus
from gastroshop.providers.payments.cloudpayments import CloudPaymentsProvider

PUBLIC_ID = "pk_test_123"
API_SECRET = "cp_api_secret"  # noqa: S105

Handler = Callable[[httpx.Request], httpx.Response]


def make_provider(handler: Handler | None = None) -> CloudPaymentsProvider:
    """Провайдер с перехватом HTTP-запросов."""

    def _unused(request: httpx.Request) -> httpx.Response:
        raise AssertionError("неожиданный запрос к API")

    return CloudPaymentsProvider(
        PUBLIC_ID,
        API_SECRET,
        transport=httpx.MockTransport(handler or _unused),
    )


def content_hmac(payload: bytes, secret: str = API_SECRET) -> str:
    """Заголовок Content-HMAC: base64(HMAC-SHA256(secret, body))."""
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def form_notification(**overrides: str) -> bytes:
    """Уведомление Pay в формате application/x-www-form-urlencoded."""
    fields = {
        "TransactionId": "555",
        "InvoiceId": "cp_3_ab12cd34",
        "Status": "Completed",
        "Amount": "100.00",
        "Currency": "RUB",
    }
    fields.update(overrides)
    return urlencode({key: value for key, value in fields.items() if value}).encode()


@pytest.fixture
def order() -> Order:
    """Заказ на 100.00 ₽ без БД."""
    return Order(id=3, amount=10000, currency="RUB", items_json="[]")


# ==============================================================================
# СОЗДАНИЕ СЧЁТА
# ==============================================================================


class TestCloudPaymentsCreatePayment:
    """Тесты для CloudPaymentsProvider.create_payment."""

    @pytest.mark.asyncio
    async def test_success(self, order: Order) -> None:
        """Счёт создан: ID cp_{order_id}_{hex}, ссылка из Model.Url."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200,
                json={"Success": True, "Model": {"Url": "https://orders.cloudpayments.ru/d/x1"}},
            )

        intent = await make_provider(handler).create_payment(
            order, customer_email="buyer@example.com"
        )

        assert intent.payment_id.startswith("cp_3_")
        assert intent.checkout_url == "https://orders.cloudpayments.ru/d/x1"
        assert intent.provider == "cloudpayments"
        assert intent.amount == 10000

        request = captured[0]
        assert request.url.path == "/orders/create"
        body = json.loads(request.content)
        assert body["Amount"] == 100.0
        assert body["InvoiceId"] == intent.payment_id
        assert body["Email"] == "buyer@example.com"
        assert body["JsonData"] == {"order_id": 3}

    @pytest.mark.asyncio
    async def test_rejected_by_api(self, order: Order) -> None:
        """Success=false — ProviderError с сообщением CloudPayments."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Success": False, "Message": "Invalid amount"})

        with pytest.raises(ProviderError, match="Invalid amount"):
            await make_provider(handler).create_payment(order)

    @pytest.mark.asyncio
    async def test_no_checkout_url(self, order: Order) -> None:
        """Ответ без ссылки на оплату — ProviderError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Success": True, "Model": {}})

        with pytest.raises(ProviderError):
            await make_provider(handler).create_payment(order)

    @pytest.mark.asyncio
    async def test_repeat_attempt_gets_new_id(self, order: Order) -> None:
        """Повторный счёт по тому же заказу получает новый InvoiceId."""
        invoice_ids: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            invoice_ids.append(json.loads(request.content)["InvoiceId"])
            return httpx.Response(
                200,
                json={"Success": True, "Model": {"Url": "https://orders.cloudpayments.ru/d/x"}},
            )

        provider = make_provider(handler)
        first = await provider.create_payment(order)
        second = await provider.create_payment(order)

        assert first.payment_id != second.payment_id
        assert invoice_ids == [first.payment_id, second.payment_id]


# ==============================================================================
# WEBHOOK
# ==============================================================================


class TestCloudPaymentsValidateWebhook:
    """Тесты для CloudPaymentsProvider.validate_webhook."""

    @pytest.mark.asyncio
    async def test_form_notification(self) -> None:
        """Form-urlencoded уведомление Pay разобрано, TransactionId — ID события."""
        payload = form_notification()

        event = await make_provider().validate_webhook(payload, content_hmac(payload))

        assert event.payment_id == "cp_3_ab12cd34"
        assert event.order_id == 3
        assert event.event_id == "555"
        assert event.status == ProviderPaymentStatus.SUCCEEDED
        assert event.amount_minor_units == 10000
        assert event.currency == "RUB"

    @pytest.mark.asyncio
    async def test_json_notification(self) -> None:
        """JSON-уведомление с числовой суммой."""
        payload = json.dumps(
            {"InvoiceId": "cp_4", "TransactionId": 777, "Status": "Declined", "Amount": 100.5}
        ).encode()

        event = await make_provider().validate_webhook(payload, content_hmac(payload))

        assert event.status == ProviderPaymentStatus.FAILED
        assert event.amount_minor_units == 10050
        assert event.event_id == "777"
        assert event.order_id == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raw_status", "expected"),
        [
            ("Completed", ProviderPaymentStatus.SUCCEEDED),
            ("Authorized", ProviderPaymentStatus.AWAITING_PAYMENT),
            ("Cancelled", ProviderPaymentStatus.CANCELED),
            ("Declined", ProviderPaymentStatus.FAILED),
            ("Refunded", "Refunded"),
        ],
    )
    async def test_status_mapping(self, raw_status: str, expected: str) -> None:
        """Статусы CloudPayments переводятся, неизвестные передаются как есть."""
        payload = form_notification(Status=raw_status)

        event = await make_provider().validate_webhook(payload, content_hmac(payload))

        assert event.status == expected

    @pytest.mark.asyncio
    async def test_foreign_invoice_without_order(self) -> None:
        """InvoiceId без префикса cp_ — заказ не определён."""
        payload = form_notification(InvoiceId="external-42")

        event = await make_provider().validate_webhook(payload, content_hmac(payload))

        assert event.payment_id == "external-42"
        assert event.order_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["InvoiceId", "Status", "Amount"])
    async def test_missing_fields(self, missing: str) -> None:
        """Без InvoiceId, Status или Amount уведомление не разбирается."""
        payload = form_notification(**{missing: ""})

        with pytest.raises(MalformedPayloadError):
            await make_provider().validate_webhook(payload, content_hmac(payload))

    @pytest.mark.asyncio
    async def test_wrong_signature(self) -> None:
        """Подпись чужим паролем API отклоняется."""
        payload = form_notification()

        with pytest.raises(InvalidSignatureError):
            await make_provider().validate_webhook(payload, content_hmac(payload, "other"))

    def test_sign_matches_content_hmac(self) -> None:
        """sign() формирует Content-HMAC в base64."""
        payload = form_notification()

        assert make_provider().sign(payload) == content_hmac(payload)


class TestCloudPaymentsPaymentStatus:
    """Тесты для CloudPaymentsProvider.get_payment_status."""

    @pytest.mark.asyncio
    async def test_unknown_status(self) -> None:
        """Статус не запрашивается у API: unknown с нулевой суммой."""
        info = await make_provider().get_payment_status("cp_3")

        assert info.status == ProviderPaymentStatus.UNKNOWN
        assert info.amount_minor_units == 0
        assert info.payment_id == "cp_3"
