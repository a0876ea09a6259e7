"""API эндпоинты для админ-панели.

- POST /api/admin/orders/{order_id}/status — ручная смена статуса заказа

Эндпоинты требуют входа в админку (cookie-сессия SQLAdmin).
Допустимые переходы: pending → paid/canceled, paid → shipped/canceled,
shipped → delivered.
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from gastroshop.admin.auth import get_admin_auth
from gastroshop.api.dependencies import get_order_service
from gastroshop.core.exceptions import InvalidStatusTransitionError, OrderNotFoundError
from gastroshop.db.models.order import OrderStatus
from gastroshop.services.order_service import OrderService
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


class OrderStatusRequest(BaseModel):
    """Запрос на смену статуса заказа."""

    status: OrderStatus


class OrderStatusResponse(BaseModel):
    """Ответ на смену статуса заказа.

    Attributes:
        success: True если статус изменён.
        order_id: ID заказа.
        status: Текущий статус заказа.
        message: Сообщение о результате.
    """

    success: bool
    order_id: int
    status: str
    message: str


async def require_admin_auth(request: Request) -> None:
    """Проверить админ-аутентификацию.

    SQLAdmin использует cookie-based auth, поэтому проверяем сессию.

    Raises:
        HTTPException: Если пользователь не авторизован.
    """
    auth_backend = get_admin_auth(request.app.state.settings.admin)

    if not await auth_backend.authenticate(request):
        raise HTTPException(
            status_code=401,
            detail="Admin authentication required",
        )


@typed_post(
    "/orders/{order_id}/status",
    dependencies=[Depends(require_admin_auth)],
)
async def change_order_status(
    order_id: int,
    body: OrderStatusRequest,
    order_service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderStatusResponse:
    """Сменить статус заказа.

    Args:
        order_id: ID заказа.
        body: Новый статус.
        order_service: Сервис заказов.

    Returns:
        OrderStatusResponse с новым статусом.

    Raises:
        HTTPException: 404 заказ не найден, 400 переход не разрешён.
    """
    try:
        order = await order_service.transition_status(order_id, body.status)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info("Администратор сменил статус заказа %s на %s", order_id, body.status)

    return OrderStatusResponse(
        success=True,
        order_id=order.id,
        status=order.status,
        message=f"Статус заказа #{order.id} изменён на {order.status}",
    )
