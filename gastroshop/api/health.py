"""Служебные эндпоинты.

- GET /health — health check для мониторинга и liveness probes
- GET /metrics — метрики в текстовом формате Prometheus
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from gastroshop.api.dependencies import get_metrics
from gastroshop.services.metrics import METRICS_CONTENT_TYPE, MetricsCollector

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Проверка состояния сервиса.

    Returns:
        Словарь со статусом "ok"
    """
    return {"status": "ok"}


@router.get("/metrics")
async def metrics(
    collector: Annotated[MetricsCollector, Depends(get_metrics)],
) -> Response:
    """Метрики приложения для Prometheus."""
    return Response(content=collector.export(), media_type=METRICS_CONTENT_TYPE)
