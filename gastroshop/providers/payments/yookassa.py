"""Провайдер платежей через YooKassa (ЮKassa).

API документация: https://yookassa.ru/developers/api

Процесс оплаты:
1. Создаём платёж через POST /v3/payments
2. Получаем confirmation_url для редиректа покупателя
3. Покупатель оплачивает на странице YooKassa и возвращается
   на {base_url}/checkout/success?order_id=N
4. На /api/webhooks/yookassa приходит уведомление о смене статуса

Уведомление подписывается прокси-слоем магазина: заголовок
X-Signature: sha256=<hex HMAC-SHA256(secret_key, body)>.
"""

import time
from typing import TYPE_CHECKING, Any

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
    event_from_payment_object,
    hmac_sha256,
    parse_amount,
    signatures_match,
)
from gastroshop.utils.logging import get_logger
from gastroshop.utils.money import format_minor_units

if TYPE_CHECKING:
    from gastroshop.db.models.order import Order

logger = get_logger(__name__)

YOOKASSA_API_URL = "https://api.yookassa.ru/v3"

YOOKASSA_CURRENCY = "RUB"

SIGNATURE_PREFIX = "sha256="

# Ключи тестового магазина начинаются с test_, боевого с live_
TEST_KEY_PREFIX = "test_"

# Ставка НДС в чеке (1 = без НДС)
RECEIPT_VAT_CODE = 1

# Маппинг статусов YooKassa → словарь провайдеров
YOOKASSA_STATUS_MAP: dict[str, str] = {
    "pending": ProviderPaymentStatus.AWAITING_PAYMENT,
    "waiting_for_capture": ProviderPaymentStatus.AWAITING_PAYMENT,  # Холдирование
    "succeeded": ProviderPaymentStatus.SUCCEEDED,
    "canceled": ProviderPaymentStatus.CANCELED,
}


class YooKassaProvider(HTTPPaymentProvider):
    """Провайдер платежей через YooKassa.

    Аутентификация: HTTP Basic Auth (shop_id:secret_key).

    Example:
        provider = YooKassaProvider(
            shop_id="123456",
            secret_key="test_secret_key_123",
            base_url="https://shop.example.com",
        )
        intent = await provider.create_payment(order, customer_email="a@b.ru")
        # intent.checkout_url: URL для редиректа покупателя
    """

    PROVIDER_NAME = "yookassa"
    API_URL = YOOKASSA_API_URL

    def __init__(
        self,
        shop_id: str,
        secret_key: str,
        *,
        base_url: str,
        test_mode: bool = True,
        webhook_url: str | None = None,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Создать провайдер YooKassa.

        Args:
            shop_id: ID магазина из личного кабинета YooKassa.
            secret_key: Секретный ключ API (им же подписываются уведомления).
            base_url: Публичный адрес магазина для return_url.
            test_mode: Ожидается тестовый магазин (ключ test_...).
            webhook_url: Адрес уведомлений из кабинета.
                По умолчанию {base_url}/api/webhooks/yookassa.
            timeout: Таймаут HTTP-запросов в секундах.
            transport: Транспорт httpx (в тестах — httpx.MockTransport).
        """
        super().__init__(shop_id, secret_key, timeout=timeout, transport=transport)
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._test_mode = test_mode
        self._webhook_url = webhook_url or f"{self._base_url}/api/webhooks/yookassa"

        if test_mode != secret_key.startswith(TEST_KEY_PREFIX):
            logger.warning(
                "YooKassa: PAYMENTS__YOOKASSA__TEST_MODE=%s не совпадает с типом ключа API",
                test_mode,
            )
        logger.info(
            "YooKassa: магазин %s, режим %s, уведомления на %s",
            shop_id,
            "тестовый" if test_mode else "боевой",
            self._webhook_url,
        )

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return self.PROVIDER_NAME

    @property
    def test_mode(self) -> bool:
        """Провайдер настроен на тестовый магазин."""
        return self._test_mode

    @property
    def webhook_url(self) -> str:
        """Адрес, на который YooKassa присылает уведомления."""
        return self._webhook_url

    def _build_request_body(
        self, order: "Order", customer_email: str | None
    ) -> dict[str, Any]:
        """Собрать тело запроса на создание платежа.

        Документация: https://yookassa.ru/developers/api#create_payment
        """
        amount = {
            "value": format_minor_units(order.amount),
            "currency": order.currency,
        }
        body: dict[str, Any] = {
            "amount": amount,
            "confirmation": {
                "type": "redirect",
                "return_url": f"{self._base_url}/checkout/success?order_id={order.id}",
            },
            "capture": True,
            "description": f"Заказ №{order.id}",
            "metadata": {"order_id": order.id},
        }

        # Чек по 54-ФЗ отправляется, только если известен email покупателя
        if customer_email:
            body["receipt"] = {
                "customer": {"email": customer_email},
                "items": [
                    {
                        "description": f"Товар {item.product_id}",
                        "quantity": str(item.quantity),
                        "amount": {
                            "value": format_minor_units(item.price_cents),
                            "currency": order.currency,
                        },
                        "vat_code": RECEIPT_VAT_CODE,
                    }
                    for item in order.items
                ],
            }

        return body

    @override
    async def create_payment(
        self,
        order: "Order",
        *,
        customer_email: str | None = None,
    ) -> PaymentIntent:
        """Создать платёж через YooKassa API.

        Idempotence-Key строится из ID заказа и текущего времени:
        повтор в ту же секунду не создаст второй платёж у YooKassa.

        Raises:
            ProviderError: Неверная валюта, ошибка API или некорректный ответ.
        """
        if order.currency.upper() != YOOKASSA_CURRENCY:
            raise ProviderError(
                f"YooKassa поддерживает только RUB, получено: {order.currency}",
                provider=self.provider_name,
            )

        idempotence_key = f"order_{order.id}_{int(time.time())}"

        logger.debug(
            "YooKassa create_payment: order_id=%s, amount=%s %s",
            order.id,
            order.amount,
            order.currency,
        )

        data = await self._request(
            "POST",
            "/payments",
            json=self._build_request_body(order, customer_email),
            headers={"Idempotence-Key": idempotence_key},
        )

        payment_id = data.get("id")
        confirmation_url = (data.get("confirmation") or {}).get("confirmation_url")
        if not payment_id or not confirmation_url:
            raise ProviderError(
                "В ответе YooKassa нет id или confirmation_url",
                provider=self.provider_name,
            )

        logger.info(
            "YooKassa платёж создан: payment_id=%s, order_id=%s, status=%s",
            payment_id,
            order.id,
            data.get("status"),
        )

        return PaymentIntent(
            payment_id=payment_id,
            checkout_url=confirmation_url,
            provider=self.provider_name,
            amount=order.amount,
            currency=order.currency,
            metadata={"order_id": order.id},
        )

    @override
    async def validate_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Проверить подпись sha256=<hex> и разобрать уведомление.

        Формат уведомления:
        {
            "type": "notification",
            "event": "payment.succeeded",
            "object": {
                "id": "2d9e5d3a-000f-5000-9000-1b68e7b15f3f",
                "status": "succeeded",
                "amount": {"value": "100.00", "currency": "RUB"},
                "metadata": {"order_id": "1"}
            }
        }
        """
        presented = signature.strip()
        if not presented.startswith(SIGNATURE_PREFIX):
            logger.warning("YooKassa webhook: подпись без префикса sha256=")
            raise InvalidSignatureError("Неверный формат подписи", provider=self.provider_name)

        expected = hmac_sha256(self._secret_key, payload).hex()
        if not signatures_match(expected, presented.removeprefix(SIGNATURE_PREFIX).lower()):
            logger.warning("YooKassa webhook: неверная подпись")
            raise InvalidSignatureError(
                "Неверная подпись webhook", provider=self.provider_name
            )

        data = decode_json_payload(payload, provider=self.provider_name)
        event = event_from_payment_object(
            data,
            provider=self.provider_name,
            event_id=None,
            status_map=YOOKASSA_STATUS_MAP,
        )

        logger.info(
            "YooKassa webhook: event=%s, payment_id=%s, status=%s",
            data.get("event"),
            event.payment_id,
            event.status,
        )
        return event

    @override
    async def get_payment_status(self, payment_id: str) -> PaymentStatusInfo:
        """Запросить платёж через GET /v3/payments/{id}."""
        data = await self._request("GET", f"/payments/{payment_id}")

        raw_status = data.get("status", "")
        amount_obj = data.get("amount") or {}

        try:
            amount = parse_amount(amount_obj.get("value"), provider=self.provider_name)
        except MalformedPayloadError as e:
            raise ProviderError(
                "В ответе YooKassa нет суммы платежа",
                provider=self.provider_name,
                original_error=e,
            ) from e

        return PaymentStatusInfo(
            payment_id=data.get("id", payment_id),
            status=YOOKASSA_STATUS_MAP.get(raw_status, raw_status),
            amount_minor_units=amount,
            currency=amount_obj.get("currency", YOOKASSA_CURRENCY),
            metadata=data.get("metadata") or {},
        )


def create_yookassa_provider(
    shop_id: str,
    secret_key: str,
    *,
    base_url: str,
    test_mode: bool = True,
    webhook_url: str | None = None,
    timeout: float = HTTP_TIMEOUT,
) -> YooKassaProvider:
    """Фабричная функция для создания провайдера YooKassa.

    Example:
        provider = create_yookassa_provider(
            shop_id=settings.payments.yookassa.shop_id,
            secret_key=settings.payments.yookassa.secret_key.get_secret_value(),
            base_url=settings.app.base_url,
        )
    """
    return YooKassaProvider(
        shop_id=shop_id,
        secret_key=secret_key,
        base_url=base_url,
        test_mode=test_mode,
        webhook_url=webhook_url,
        timeout=timeout,
    )
