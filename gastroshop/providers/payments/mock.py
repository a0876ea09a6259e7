"""Тестовый платёжный провайдер.

Не обращается к внешним сервисам и нужен для локальной разработки
и автотестов:
- create_payment выдаёт ID вида mock_{order_id}_{hex} и ссылку
  на локальную страницу {base_url}/mock-checkout/{payment_id}
- webhook подписывается HMAC-SHA256 от тела общим секретом
  (hex в заголовке X-Signature)

Формат уведомления:
{
    "event": "payment.succeeded",
    "id": "evt_123",
    "object": {
        "id": "mock_1_5f3a9c1e2b7d",
        "status": "succeeded",
        "amount": {"value": "100.00", "currency": "RUB"},
        "metadata": {"order_id": 1}
    }
}
"""

import uuid
from typing import TYPE_CHECKING

from typing_extensions import override

from gastroshop.core.exceptions import InvalidSignatureError, ProviderError
from gastroshop.providers.payments.base import (
    BasePaymentProvider,
    PaymentIntent,
    PaymentStatusInfo,
    WebhookEvent,
    decode_json_payload,
    event_from_payment_object,
    hmac_sha256,
    signatures_match,
)
from gastroshop.utils.logging import get_logger

if TYPE_CHECKING:
    from gastroshop.db.models.order import Order

logger = get_logger(__name__)


class MockPaymentProvider(BasePaymentProvider):
    """Провайдер без внешнего API.

    Статус платежа хранится только в нашей БД, поэтому
    supports_remote_status=False.
    """

    PROVIDER_NAME = "mock"

    supports_remote_status = False

    def __init__(self, *, base_url: str, webhook_secret: str) -> None:
        """Создать mock-провайдер.

        Args:
            base_url: Публичный адрес магазина для ссылки на оплату.
            webhook_secret: Секрет для подписи webhook'ов.
        """
        self._base_url = base_url.rstrip("/")
        self._webhook_secret = webhook_secret

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return self.PROVIDER_NAME

    def sign(self, payload: bytes) -> str:
        """Подписать тело уведомления (hex HMAC-SHA256).

        Используется страницей mock-checkout и тестами.
        """
        return hmac_sha256(self._webhook_secret, payload).hex()

    @override
    async def create_payment(
        self,
        order: "Order",
        *,
        customer_email: str | None = None,
    ) -> PaymentIntent:
        """Создать платёж без обращения к внешнему API."""
        payment_id = f"mock_{order.id}_{uuid.uuid4().hex[:12]}"

        logger.info("Mock платёж создан: payment_id=%s, order_id=%s", payment_id, order.id)

        return PaymentIntent(
            payment_id=payment_id,
            checkout_url=f"{self._base_url}/mock-checkout/{payment_id}",
            provider=self.provider_name,
            amount=order.amount,
            currency=order.currency,
            metadata={"order_id": order.id},
        )

    @override
    async def validate_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Проверить HMAC-подпись и разобрать уведомление."""
        if not signatures_match(self.sign(payload), signature.strip().lower()):
            logger.warning("Mock webhook: неверная подпись")
            raise InvalidSignatureError(
                "Неверная подпись webhook", provider=self.provider_name
            )

        data = decode_json_payload(payload, provider=self.provider_name)
        event_id = data.get("id")

        return event_from_payment_object(
            data,
            provider=self.provider_name,
            event_id=str(event_id) if event_id else None,
        )

    @override
    async def get_payment_status(self, payment_id: str) -> PaymentStatusInfo:
        """У mock-провайдера нет внешнего статуса.

        Raises:
            ProviderError: Всегда. Статус mock-платежа берётся из БД.
        """
        raise ProviderError(
            "Mock-провайдер не хранит статусы, используйте данные из БД",
            provider=self.provider_name,
        )


def create_mock_provider(*, base_url: str, webhook_secret: str) -> MockPaymentProvider:
    """Фабричная функция для создания mock-провайдера."""
    return MockPaymentProvider(base_url=base_url, webhook_secret=webhook_secret)
