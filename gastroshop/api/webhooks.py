"""Webhook эндпоинты платёжных провайдеров.

POST /api/webhooks/{provider}, где provider — mock, yookassa или cloudpayments.
Уведомление проверяется провайдером из URL, а не провайдером из
конфигурации: смена PAYMENTS__PROVIDER не ломает приём уведомлений
по уже созданным платежам.

Подпись:
- Mock, YooKassa: заголовок X-Signature
- CloudPayments: заголовок Content-HMAC (или X-Signature)

Настройка webhook'ов:
- YooKassa: Личный кабинет → Интеграция → HTTP-уведомления
  URL: https://ваш-домен.ru/api/webhooks/yookassa
- CloudPayments: Личный кабинет → Настройки сайта → Уведомления
  URL: https://ваш-домен.ru/api/webhooks/cloudpayments
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from gastroshop.api.dependencies import (
    decrease_stock_after_payment,
    get_order_service,
    get_payment_service,
)
from gastroshop.core.exceptions import (
    PaymentError,
    PaymentNotFoundError,
    UnsupportedProviderError,
)
from gastroshop.services.order_service import OrderService
from gastroshop.services.payment_service import PaymentService
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_post("/{provider}")
async def provider_webhook(
    provider: str,
    request: Request,
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
    x_signature: Annotated[str | None, Header(alias="X-Signature")] = None,
    content_hmac: Annotated[str | None, Header(alias="Content-HMAC")] = None,
) -> dict[str, str]:
    """Обработать webhook указанного провайдера.

    Args:
        provider: Имя провайдера из URL.
        request: HTTP-запрос с сырым телом уведомления.
        payment_service: Сервис платежей.
        order_service: Сервис заказов.
        x_signature: Подпись (Mock, YooKassa).
        content_hmac: Подпись (CloudPayments).

    Returns:
        {"status": "success"}

    Raises:
        HTTPException: 400 подпись отсутствует или неверна, провайдер
            неизвестен, тело не разбирается, платёж не найден.
    """
    signature = x_signature or content_hmac
    if not signature:
        raise HTTPException(status_code=400, detail="Missing signature")

    payload = await request.body()

    try:
        outcome = await payment_service.process_webhook(
            payload, signature, provider_name=provider
        )
    except (PaymentError, PaymentNotFoundError, UnsupportedProviderError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(
        "Webhook %s обработан: payment_id=%s, duplicate=%s",
        provider,
        outcome.event.payment_id,
        outcome.duplicate,
    )

    await decrease_stock_after_payment(order_service, outcome)
    return {"status": "success"}
