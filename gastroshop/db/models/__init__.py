"""Модели базы данных (таблицы).

Все модели наследуются от Base (из db.models_base).
"""

from gastroshop.db.models.order import Order, OrderItem, OrderStatus
from gastroshop.db.models.payment import Payment, PaymentStatus
from gastroshop.db.models.product import Product
from gastroshop.db.models.user import User, UserRole

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "Product",
    "User",
    "UserRole",
]
