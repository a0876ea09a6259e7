"""Базовый адаптер для платёжных провайдеров.

Все провайдеры (Mock, YooKassa, CloudPayments) реализуют один интерфейс:
- create_payment — создать платёж и получить ссылку на оплату
- validate_webhook — проверить подпись уведомления и разобрать его
- get_payment_status — запросить статус платежа у провайдера

Провайдеры отличаются схемой подписи, форматом уведомлений и способом
передачи суммы (десятичная строка или число). Наружу всё приводится
к копейкам и единому словарю статусов (ProviderPaymentStatus).

Паттерн: Adapter (GoF) + Strategy
"""

import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.core.exceptions import MalformedPayloadError, ProviderError
from gastroshop.utils.logging import get_logger
from gastroshop.utils.money import format_minor_units, to_minor_units

if TYPE_CHECKING:
    from gastroshop.db.models.order import Order

logger = get_logger(__name__)

# Таймаут HTTP-запросов к API провайдеров в секундах
HTTP_TIMEOUT = 30.0


class ProviderPaymentStatus(StrEnum):
    """Статус платежа в словаре провайдеров.

    Значения:
        AWAITING_PAYMENT: Платёж создан, ожидает оплаты.
        SUCCEEDED: Деньги получены.
        CANCELED: Платёж отменён.
        FAILED: Платёж отклонён.
        UNKNOWN: Провайдер не умеет сообщать статус.

    Статусы провайдера, которых нет в таблице соответствия,
    передаются дальше без изменений.
    """

    AWAITING_PAYMENT = "awaiting_payment"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class PaymentIntent:
    """Созданный, но ещё не оплаченный платёж.

    Attributes:
        payment_id: ID платежа у провайдера.
        checkout_url: Ссылка на страницу оплаты.
        provider: Название провайдера.
        amount: Сумма в копейках.
        currency: Код валюты.
        metadata: Данные, переданные провайдеру вместе с платежом.
    """

    payment_id: str
    checkout_url: str
    provider: str
    amount: int
    currency: str = DEFAULT_CURRENCY
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    """Проверенное и разобранное уведомление провайдера.

    Attributes:
        payment_id: ID платежа у провайдера.
        status: Статус в словаре провайдеров (или исходный статус провайдера).
        amount_minor_units: Сумма в копейках.
        currency: Код валюты.
        order_id: ID заказа из метаданных платежа (если передан).
        event_id: ID события для защиты от повторной доставки.
            Mock: поле id уведомления, CloudPayments: TransactionId,
            YooKassa: не передаётся.
        provider: Название провайдера.
        raw_data: Исходное тело уведомления для отладки.
    """

    payment_id: str
    status: str
    amount_minor_units: int
    currency: str
    order_id: int | None
    event_id: str | None
    provider: str
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_success(self) -> bool:
        """Проверить, сообщает ли событие об успешной оплате."""
        return self.status == ProviderPaymentStatus.SUCCEEDED


@dataclass
class PaymentStatusInfo:
    """Статус платежа для ответа GET /api/payments/status/{payment_id}.

    Attributes:
        payment_id: ID платежа у провайдера.
        status: Статус платежа.
        amount_minor_units: Сумма в копейках.
        currency: Код валюты.
        metadata: Метаданные платежа.
    """

    payment_id: str
    status: str
    amount_minor_units: int
    currency: str = DEFAULT_CURRENCY
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Представление в формате {id, status, amount: {value, currency}, metadata}."""
        return {
            "id": self.payment_id,
            "status": self.status,
            "amount": {
                "value": format_minor_units(self.amount_minor_units),
                "currency": self.currency,
            },
            "metadata": self.metadata,
        }


# =============================================================================
# ОБЩИЕ ФУНКЦИИ ДЛЯ ПРОВАЙДЕРОВ
# =============================================================================


def hmac_sha256(secret: str, payload: bytes) -> bytes:
    """HMAC-SHA256 от сырого тела запроса."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()


def signatures_match(expected: str, presented: str) -> bool:
    """Сравнить подписи за постоянное время."""
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def decode_json_payload(payload: bytes, *, provider: str) -> dict[str, Any]:
    """Разобрать JSON-тело уведомления.

    Raises:
        MalformedPayloadError: Тело не JSON или не объект.
    """
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedPayloadError(
            "Тело webhook не является JSON",
            provider=provider,
            original_error=e,
        ) from e

    if not isinstance(data, dict):
        raise MalformedPayloadError("Тело webhook должно быть JSON-объектом", provider=provider)
    return data


def parse_order_id(value: Any, *, provider: str) -> int | None:
    """Разобрать order_id из метаданных (число или строка из цифр).

    Raises:
        MalformedPayloadError: order_id не является целым числом.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedPayloadError(f"Некорректный order_id: {value!r}", provider=provider)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise MalformedPayloadError(f"Некорректный order_id: {value!r}", provider=provider)


def parse_amount(value: Any, *, provider: str) -> int:
    """Перевести сумму провайдера ("100.00" или 100) в копейки.

    Raises:
        MalformedPayloadError: Сумма отсутствует или не число.
    """
    if value is None or isinstance(value, bool):
        raise MalformedPayloadError("В webhook отсутствует сумма платежа", provider=provider)
    try:
        return to_minor_units(value)
    except ValueError as e:
        raise MalformedPayloadError(
            f"Некорректная сумма платежа: {value!r}",
            provider=provider,
            original_error=e,
        ) from e


def event_from_payment_object(
    data: dict[str, Any],
    *,
    provider: str,
    event_id: str | None,
    status_map: dict[str, str] | None = None,
) -> WebhookEvent:
    """Разобрать уведомление формата {event, object: {id, status, amount, metadata}}.

    Этот формат используют Mock и YooKassa.

    Args:
        data: Тело уведомления.
        provider: Название провайдера (для ошибок).
        event_id: ID события (если провайдер его передаёт).
        status_map: Соответствие статусов провайдера нашему словарю.

    Returns:
        WebhookEvent.

    Raises:
        MalformedPayloadError: Нет обязательных полей.
    """
    payment_obj = data.get("object")
    if not isinstance(payment_obj, dict):
        raise MalformedPayloadError("В webhook отсутствует объект платежа", provider=provider)

    payment_id = payment_obj.get("id")
    if not payment_id or not isinstance(payment_id, str):
        raise MalformedPayloadError("В webhook отсутствует ID платежа", provider=provider)

    raw_status = payment_obj.get("status")
    if not raw_status or not isinstance(raw_status, str):
        raise MalformedPayloadError("В webhook отсутствует статус платежа", provider=provider)

    amount_obj = payment_obj.get("amount")
    if not isinstance(amount_obj, dict):
        raise MalformedPayloadError("В webhook отсутствует сумма платежа", provider=provider)

    metadata = payment_obj.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise MalformedPayloadError("Поле metadata должно быть объектом", provider=provider)

    status = (status_map or {}).get(raw_status, raw_status)

    return WebhookEvent(
        payment_id=payment_id,
        status=status,
        amount_minor_units=parse_amount(amount_obj.get("value"), provider=provider),
        currency=amount_obj.get("currency") or DEFAULT_CURRENCY,
        order_id=parse_order_id(metadata.get("order_id"), provider=provider),
        event_id=event_id or None,
        provider=provider,
        raw_data=data,
    )


# =============================================================================
# БАЗОВЫЕ КЛАССЫ
# =============================================================================


class BasePaymentProvider(ABC):
    """Абстрактный базовый класс для платёжных провайдеров.

    Для добавления нового провайдера:
    1. Унаследуйте BasePaymentProvider (или HTTPPaymentProvider)
    2. Реализуйте create_payment, validate_webhook, get_payment_status
    3. Зарегистрируйте фабрику в providers/payments/registry.py
    """

    # False: у провайдера нет внешнего источника статуса,
    # статус платежа берётся из нашей БД.
    supports_remote_status: bool = True

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Название провайдера (mock, yookassa, cloudpayments)."""

    @abstractmethod
    async def create_payment(
        self,
        order: "Order",
        *,
        customer_email: str | None = None,
    ) -> PaymentIntent:
        """Создать платёж для заказа.

        Args:
            order: Заказ с суммой больше нуля.
            customer_email: Email покупателя (для чека), если известен.

        Returns:
            PaymentIntent со ссылкой на оплату и ID платежа.

        Raises:
            ProviderError: Сетевая ошибка, ответ не 2xx, некорректный ответ.
        """

    @abstractmethod
    async def validate_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Проверить подпись уведомления и разобрать его.

        Args:
            payload: Сырое тело HTTP-запроса.
            signature: Значение заголовка с подписью.

        Returns:
            WebhookEvent с суммой в копейках.

        Raises:
            InvalidSignatureError: Подпись не совпала.
            MalformedPayloadError: Тело не разбирается.
        """

    @abstractmethod
    async def get_payment_status(self, payment_id: str) -> PaymentStatusInfo:
        """Запросить статус платежа у провайдера.

        Raises:
            ProviderError: Ошибка запроса к API.
        """

    async def close(self) -> None:
        """Освободить ресурсы (HTTP-клиенты)."""


class HTTPPaymentProvider(BasePaymentProvider):
    """Провайдер с REST API и HTTP Basic Auth.

    HTTP-клиент создаётся лениво при первом запросе. Таймауты и сетевые
    ошибки превращаются в ProviderError без повторных попыток.
    """

    API_URL: str = ""

    def __init__(
        self,
        username: str,
        password: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Создать провайдер.

        Args:
            username: Логин Basic Auth (shop_id / public_id).
            password: Пароль Basic Auth (секретный ключ API).
            timeout: Таймаут HTTP-запросов в секундах.
            transport: Транспорт httpx (в тестах — httpx.MockTransport).
        """
        self._auth = (username, password)
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Получить или создать HTTP-клиент."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_URL,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Выполнить запрос к API и вернуть JSON ответа.

        Raises:
            ProviderError: Таймаут, сетевая ошибка, ответ не 2xx или не JSON.
        """
        try:
            client = await self._get_client()
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s таймаут: %s %s", self.provider_name, method, url)
            raise ProviderError(
                f"Таймаут запроса к {self.provider_name}",
                provider=self.provider_name,
                is_retryable=True,
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            logger.error("%s HTTP ошибка: %s", self.provider_name, e)
            raise ProviderError(
                f"Ошибка HTTP: {e}",
                provider=self.provider_name,
                is_retryable=True,
                original_error=e,
            ) from e

        if not response.is_success:
            logger.error(
                "%s вернул статус %s: %s",
                self.provider_name,
                response.status_code,
                response.text[:500],
            )
            raise ProviderError(
                f"API вернул статус {response.status_code}: {response.text[:200]}",
                provider=self.provider_name,
                is_retryable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                "Ответ API не является JSON",
                provider=self.provider_name,
                original_error=e,
            ) from e

        if not isinstance(data, dict):
            raise ProviderError("Некорректный ответ API", provider=self.provider_name)
        return data
