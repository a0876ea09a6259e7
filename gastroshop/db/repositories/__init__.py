"""Репозитории для работы с данными.

Вся работа с SQL сосредоточена в репозиториях: сервисы и HTTP-слой
вызывают их методы, а в тестах репозитории легко подменить.
"""

from gastroshop.db.repositories.order_repo import OrderRepository
from gastroshop.db.repositories.payment_repo import PaymentRepository
from gastroshop.db.repositories.product_repo import ProductRepository
from gastroshop.db.repositories.user_repo import UserRepository

__all__ = [
    "OrderRepository",
    "PaymentRepository",
    "ProductRepository",
    "UserRepository",
]
