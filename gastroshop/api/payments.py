"""Платёжные эндпоинты магазина.

- POST /api/payments/create — создать платёж для заказа
- POST /api/payments/webhook — webhook настроенного провайдера (X-Signature)
- GET /api/payments/status/{payment_id} — статус платежа
- POST /api/payments/mock/complete — завершить mock-платёж (локальная разработка)

Webhook возвращает 4xx при неверной подписи, неразбираемом теле или
неизвестном платеже: провайдер повторит доставку. Повторная доставка
уже применённого события возвращает успех без изменений.
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from gastroshop.api.dependencies import (
    decrease_stock_after_payment,
    get_order_service,
    get_payment_service,
)
from gastroshop.core.exceptions import (
    DatabaseError,
    InvalidOrderError,
    OrderNotFoundError,
    PaymentError,
    PaymentNotFoundError,
    ProviderError,
    UnsupportedProviderError,
)
from gastroshop.services.order_service import OrderService
from gastroshop.services.payment_service import PaymentService
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


def typed_get(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.get."""
    return router.get(*args, **kwargs)


class CreatePaymentRequest(BaseModel):
    """Запрос на создание платежа."""

    order_id: int = Field(gt=0)


class CreatePaymentResponse(BaseModel):
    """Ссылка на оплату созданного платежа."""

    payment_id: str
    payment_url: str


class MockCompleteRequest(BaseModel):
    """Запрос на завершение mock-платежа."""

    payment_id: str = Field(min_length=1)


class MockCompleteResponse(BaseModel):
    """Результат завершения mock-платежа."""

    message: str
    payment_id: str
    order_id: int | None


@typed_post("/create")
async def create_payment(
    body: CreatePaymentRequest,
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
) -> CreatePaymentResponse:
    """Создать платёж для заказа.

    Args:
        body: ID заказа.
        payment_service: Сервис платежей.
        order_service: Сервис заказов.

    Returns:
        ID платежа и ссылка на страницу оплаты.

    Raises:
        HTTPException: 404 заказ не найден, 400 сумма заказа некорректна,
            500 провайдер не настроен, 502 ошибка провайдера.
    """
    try:
        order = await order_service.get_order(body.order_id)
        customer_email = await order_service.get_customer_email(order)
        info = await payment_service.create_payment(order, customer_email=customer_email)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidOrderError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except UnsupportedProviderError as e:
        logger.error("Платёж не создан: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=e.message) from e

    return CreatePaymentResponse(payment_id=info.payment_id, payment_url=info.payment_url)


@typed_post("/webhook")
async def payment_webhook(
    request: Request,
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
    x_signature: Annotated[str | None, Header(alias="X-Signature")] = None,
) -> dict[str, str]:
    """Обработать webhook провайдера из конфигурации.

    Args:
        request: HTTP-запрос с сырым телом уведомления.
        payment_service: Сервис платежей.
        order_service: Сервис заказов.
        x_signature: Подпись тела запроса.

    Returns:
        {"status": "success"}

    Raises:
        HTTPException: 400 подпись отсутствует или неверна, тело не
            разбирается, платёж не найден.
    """
    if not x_signature:
        raise HTTPException(status_code=400, detail="Missing signature")

    payload = await request.body()
    logger.debug("Получен webhook: %s", payload[:1000])

    try:
        outcome = await payment_service.process_webhook(payload, x_signature)
    except (PaymentError, PaymentNotFoundError, UnsupportedProviderError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    await decrease_stock_after_payment(order_service, outcome)
    return {"status": "success"}


@typed_get("/status/{payment_id}")
async def get_payment_status(
    payment_id: str,
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
) -> dict[str, Any]:
    """Получить статус платежа.

    Returns:
        {id, status, amount: {value, currency}, metadata}

    Raises:
        HTTPException: 404 платёж не найден, 500 провайдер платежа
            не настроен, 502 ошибка провайдера.
    """
    try:
        info = await payment_service.get_payment_status(payment_id)
    except PaymentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except UnsupportedProviderError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return info.to_dict()


@typed_post("/mock/complete")
async def complete_mock_payment(
    body: MockCompleteRequest,
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
    order_service: Annotated[OrderService, Depends(get_order_service)],
) -> MockCompleteResponse:
    """Отметить mock-платёж оплаченным.

    Статусы платежа и заказа меняются так же, как при webhook'е,
    товары списываются со склада.

    Raises:
        HTTPException: 404 платёж не найден или создан не mock-провайдером.
    """
    try:
        outcome = await payment_service.complete_mock_payment(body.payment_id)
    except PaymentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    await decrease_stock_after_payment(order_service, outcome)

    return MockCompleteResponse(
        message="Payment completed successfully",
        payment_id=body.payment_id,
        order_id=outcome.order_id,
    )
