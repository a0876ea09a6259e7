"""API эндпоинты.

FastAPI роутеры для:
- Health check и счётчиков (/health, /metrics)
- Платежей (/api/payments/...)
- Webhook'ов платёжных провайдеров (/api/webhooks/{provider})
- Админ-операций (/api/admin/...)
"""

from gastroshop.api.admin import router as admin_router
from gastroshop.api.health import router as health_router
from gastroshop.api.payments import router as payments_router
from gastroshop.api.webhooks import router as webhooks_router

__all__ = ["admin_router", "health_router", "payments_router", "webhooks_router"]
