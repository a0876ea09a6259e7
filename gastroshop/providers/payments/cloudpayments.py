"""Провайдер платежей через CloudPayments.

API документация: https://developers.cloudpayments.ru

Процесс оплаты:
1. Создаём счёт через POST /orders/create (Basic Auth public_id:api_secret)
2. Покупатель оплачивает по ссылке из ответа (Model.Url)
3. CloudPayments отправляет уведомление Pay/Fail на /api/webhooks/cloudpayments

Уведомления приходят как application/x-www-form-urlencoded (или JSON)
и подписываются заголовком Content-HMAC: base64(HMAC-SHA256(api_secret, body)).

Ограничение: запрос статуса платежа не реализован,
get_payment_status возвращает статус "unknown".
"""

import base64
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

import httpx
from typing_extensions import override

from gastroshop.core.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    ProviderError,
)
from gastroshop.providers.payments.base import (
    HTTP_TIMEOUT,
    HTTPPaymentProvider,
    PaymentIntent,
    PaymentStatusInfo,
    ProviderPaymentStatus,
    WebhookEvent,
    decode_json_payload,
    hmac_sha256,
    parse_amount,
    parse_order_id,
    signatures_match,
)
from gastroshop.utils.logging import get_logger
from gastroshop.utils.money import to_decimal

if TYPE_CHECKING:
    from gastroshop.db.models.order import Order

logger = get_logger(__name__)

CLOUDPAYMENTS_API_URL = "https://api.cloudpayments.ru"

CLOUDPAYMENTS_CURRENCY = "RUB"

# ID платежа: cp_{order_id}_{суффикс попытки}. Он же передаётся как InvoiceId.
PAYMENT_ID_PREFIX = "cp_"

CLOUDPAYMENTS_STATUS_MAP: dict[str, str] = {
    "Completed": ProviderPaymentStatus.SUCCEEDED,
    "Authorized": ProviderPaymentStatus.AWAITING_PAYMENT,
    "AwaitingAuthentication": ProviderPaymentStatus.AWAITING_PAYMENT,
    "Cancelled": ProviderPaymentStatus.CANCELED,
    "Declined": ProviderPaymentStatus.FAILED,
}


class CloudPaymentsProvider(HTTPPaymentProvider):
    """Провайдер платежей через CloudPayments.

    Аутентификация: HTTP Basic Auth (public_id:api_secret).
    """

    PROVIDER_NAME = "cloudpayments"
    API_URL = CLOUDPAYMENTS_API_URL

    def __init__(
        self,
        public_id: str,
        api_secret: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Создать провайдер CloudPayments.

        Args:
            public_id: Public ID сайта.
            api_secret: Пароль для API (им же подписываются уведомления).
            timeout: Таймаут HTTP-запросов в секундах.
            transport: Транспорт httpx (в тестах — httpx.MockTransport).
        """
        super().__init__(public_id, api_secret, timeout=timeout, transport=transport)
        self._api_secret = api_secret

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return self.PROVIDER_NAME

    def sign(self, payload: bytes) -> str:
        """Подпись уведомления в формате Content-HMAC."""
        return base64.b64encode(hmac_sha256(self._api_secret, payload)).decode("ascii")

    @override
    async def create_payment(
        self,
        order: "Order",
        *,
        customer_email: str | None = None,
    ) -> PaymentIntent:
        """Создать счёт на оплату через /orders/create.

        Raises:
            ProviderError: Ошибка API или Success=false в ответе.
        """
        payment_id = f"{PAYMENT_ID_PREFIX}{order.id}_{uuid.uuid4().hex[:8]}"

        body: dict[str, Any] = {
            "Amount": float(to_decimal(order.amount)),
            "Currency": order.currency,
            "Description": f"Заказ №{order.id}",
            "InvoiceId": payment_id,
            "RequireConfirmation": False,
            "JsonData": {"order_id": order.id},
        }
        if customer_email:
            body["Email"] = customer_email
            body["AccountId"] = customer_email

        data = await self._request("POST", "/orders/create", json=body)

        if not data.get("Success"):
            raise ProviderError(
                f"CloudPayments отклонил запрос: {data.get('Message') or 'без описания'}",
                provider=self.provider_name,
            )

        checkout_url = (data.get("Model") or {}).get("Url")
        if not checkout_url:
            raise ProviderError(
                "В ответе CloudPayments нет ссылки на оплату",
                provider=self.provider_name,
            )

        logger.info(
            "CloudPayments счёт создан: payment_id=%s, order_id=%s",
            payment_id,
            order.id,
        )

        return PaymentIntent(
            payment_id=payment_id,
            checkout_url=checkout_url,
            provider=self.provider_name,
            amount=order.amount,
            currency=order.currency,
            metadata={"order_id": order.id},
        )

    def _decode_payload(self, payload: bytes) -> dict[str, Any]:
        """Разобрать тело уведомления: JSON или form-urlencoded."""
        if payload.lstrip().startswith(b"{"):
            return decode_json_payload(payload, provider=self.provider_name)

        try:
            return dict(parse_qsl(payload.decode("utf-8"), keep_blank_values=True))
        except UnicodeDecodeError as e:
            raise MalformedPayloadError(
                "Тело webhook не в UTF-8",
                provider=self.provider_name,
                original_error=e,
            ) from e

    @override
    async def validate_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Проверить Content-HMAC и разобрать уведомление.

        Поля уведомления: InvoiceId, TransactionId, Status, Amount, Currency.
        """
        if not signatures_match(self.sign(payload), signature.strip()):
            logger.warning("CloudPayments webhook: неверная подпись")
            raise InvalidSignatureError(
                "Неверная подпись webhook", provider=self.provider_name
            )

        data = self._decode_payload(payload)

        payment_id = str(data.get("InvoiceId") or "")
        if not payment_id:
            raise MalformedPayloadError(
                "В webhook отсутствует InvoiceId", provider=self.provider_name
            )

        raw_status = str(data.get("Status") or "")
        if not raw_status:
            raise MalformedPayloadError(
                "В webhook отсутствует Status", provider=self.provider_name
            )

        order_id = None
        if payment_id.startswith(PAYMENT_ID_PREFIX):
            raw_order_id = payment_id.removeprefix(PAYMENT_ID_PREFIX).split("_", 1)[0]
            order_id = parse_order_id(raw_order_id, provider=self.provider_name)

        transaction_id = data.get("TransactionId")

        event = WebhookEvent(
            payment_id=payment_id,
            status=CLOUDPAYMENTS_STATUS_MAP.get(raw_status, raw_status),
            amount_minor_units=parse_amount(data.get("Amount"), provider=self.provider_name),
            currency=str(data.get("Currency") or CLOUDPAYMENTS_CURRENCY),
            order_id=order_id,
            event_id=str(transaction_id) if transaction_id else None,
            provider=self.provider_name,
            raw_data=data,
        )

        logger.info(
            "CloudPayments webhook: payment_id=%s, transaction_id=%s, status=%s",
            event.payment_id,
            event.event_id,
            raw_status,
        )
        return event

    @override
    async def get_payment_status(self, payment_id: str) -> PaymentStatusInfo:
        """Заглушка: CloudPayments не опрашивается о статусе.

        Возвращает статус "unknown" с нулевой суммой.
        """
        return PaymentStatusInfo(
            payment_id=payment_id,
            status=ProviderPaymentStatus.UNKNOWN,
            amount_minor_units=0,
            currency=CLOUDPAYMENTS_CURRENCY,
        )


def create_cloudpayments_provider(
    public_id: str,
    api_secret: str,
    *,
    timeout: float = HTTP_TIMEOUT,
) -> CloudPaymentsProvider:
    """Фабричная функция для создания провайдера CloudPayments."""
    return CloudPaymentsProvider(public_id=public_id, api_secret=api_secret, timeout=timeout)
