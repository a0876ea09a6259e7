"""Представления (views) для админки.

Каждый ModelView определяет как модель отображается в админке:
- Какие колонки показывать в списке
- Какие поля доступны для поиска
- Какие поля можно редактировать

Заказы и платежи только просматриваются: статусы платежей меняют
webhook'и, статусы заказов — POST /api/admin/orders/{id}/status
с проверкой допустимых переходов.

Примечание: SQLAdmin использует атрибуты класса для конфигурации.
Это стандартный паттерн библиотеки, поэтому отключаем RUF012.
"""

# ruff: noqa: RUF012, S704

from typing import Any

from markupsafe import Markup
from sqladmin import ModelView

from gastroshop.config.settings import settings
from gastroshop.db.models.order import Order, OrderStatus
from gastroshop.db.models.payment import Payment
from gastroshop.db.models.product import Product
from gastroshop.db.models.user import User, UserRole
from gastroshop.services.email_service import get_status_label
from gastroshop.utils.money import format_minor_units
from gastroshop.utils.timezone import format_datetime

# Часовой пояс для отображения времени в админке
ADMIN_TIMEZONE = settings.logging.timezone

DETAIL_DATETIME_FORMAT = "%d.%m.%Y %H:%M:%S"

ORDER_STATUS_LABELS = {
    OrderStatus.PENDING: "Ожидает оплаты",
    OrderStatus.PAID: "Оплачен",
    OrderStatus.CANCELED: "Отменён",
    OrderStatus.SHIPPED: "Передан в доставку",
    OrderStatus.DELIVERED: "Доставлен",
}

# Цвета для статус-бейджей заказов (Bootstrap классы)
ORDER_STATUS_COLORS = {
    OrderStatus.PENDING: "warning",
    OrderStatus.PAID: "success",
    OrderStatus.CANCELED: "secondary",
    OrderStatus.SHIPPED: "info",
    OrderStatus.DELIVERED: "primary",
}

PAYMENT_PROVIDER_LABELS = {
    "mock": "Тестовый (mock)",
    "yookassa": "ЮKassa",
    "cloudpayments": "CloudPayments",
}

USER_ROLE_LABELS = {
    UserRole.CUSTOMER: "Покупатель",
    UserRole.ADMIN: "Администратор",
}


def format_money(model: Any, attr: Any) -> str:
    """Сумма модели в рублях: 10000 копеек → "100.00 RUB"."""
    return f"{format_minor_units(model.amount)} {model.currency}"


def format_order_status(model: Order, attr: Any) -> Markup:
    """Статус заказа цветным бейджем."""
    label = ORDER_STATUS_LABELS.get(model.status, model.status)
    color = ORDER_STATUS_COLORS.get(model.status, "secondary")
    return Markup('<span class="badge bg-{}">{}</span>').format(color, label)


def format_optional_datetime(value: Any, fmt: str = "%d.%m.%Y %H:%M") -> str:
    """Дата в часовом поясе админки или прочерк."""
    return format_datetime(value, ADMIN_TIMEZONE, fmt=fmt) if value else "—"


class OrderAdmin(ModelView, model=Order):
    """Представление заказов в админке."""

    name = "Заказ"
    name_plural = "Заказы"
    icon = "fa-solid fa-basket-shopping"

    column_labels = {
        Order.id: "ID",
        Order.user_id: "ID покупателя",
        Order.items_json: "Позиции",
        Order.amount: "Сумма",
        Order.currency: "Валюта",
        Order.status: "Статус",
        Order.payment_id: "ID платежа",
        Order.shipping_address_json: "Адрес доставки",
        Order.created_at: "Дата создания",
        Order.updated_at: "Дата обновления",
    }

    column_list = [
        Order.id,
        Order.user_id,
        Order.status,
        Order.amount,
        Order.payment_id,
        Order.created_at,
    ]

    column_searchable_list = [Order.payment_id]
    column_search_placeholder = "Поиск по ID платежа"

    # Новые первыми
    column_default_sort = [(Order.created_at, True)]

    column_sortable_list = [Order.id, Order.status, Order.amount, Order.created_at]

    column_formatters = {
        Order.status: format_order_status,
        Order.amount: format_money,
        Order.user_id: lambda m, a: str(m.user_id) if m.user_id else "Гость",
        Order.created_at: lambda m, a: format_optional_datetime(m.created_at),
    }

    column_formatters_detail = {
        Order.status: format_order_status,
        Order.amount: format_money,
        Order.created_at: lambda m, a: format_optional_datetime(
            m.created_at, DETAIL_DATETIME_FORMAT
        ),
        Order.updated_at: lambda m, a: format_optional_datetime(
            m.updated_at, DETAIL_DATETIME_FORMAT
        ),
    }

    can_create = False
    can_edit = False
    can_delete = False

    page_size = 50
    page_size_options = [25, 50, 100, 200]

    can_export = True
    export_types = ["csv"]


class PaymentAdmin(ModelView, model=Payment):
    """Представление платежей в админке.

    Позволяет:
    - Просматривать все попытки оплаты
    - Отслеживать статус платежей и применённые события webhook'ов
    - Экспортировать данные для отчётности
    """

    name = "Платёж"
    name_plural = "Платежи"
    icon = "fa-solid fa-credit-card"

    column_labels = {
        Payment.id: "ID",
        Payment.provider_payment_id: "ID провайдера",
        Payment.order_id: "ID заказа",
        Payment.amount: "Сумма",
        Payment.currency: "Валюта",
        Payment.status: "Статус",
        Payment.provider: "Провайдер",
        Payment.checkout_url: "Ссылка на оплату",
        Payment.webhook_event_id: "ID события",
        Payment.metadata_json: "Метаданные",
        Payment.created_at: "Дата создания",
        Payment.updated_at: "Дата обновления",
    }

    column_list = [
        Payment.id,
        Payment.provider_payment_id,
        Payment.order_id,
        Payment.provider,
        Payment.status,
        Payment.amount,
        Payment.created_at,
    ]

    column_searchable_list = [Payment.provider_payment_id, Payment.webhook_event_id]
    column_search_placeholder = "Поиск по ID провайдера или ID события"

    column_default_sort = [(Payment.created_at, True)]

    column_sortable_list = [
        Payment.id,
        Payment.order_id,
        Payment.provider,
        Payment.status,
        Payment.amount,
        Payment.created_at,
    ]

    column_formatters = {
        Payment.status: lambda m, a: get_status_label(m.status),
        Payment.provider: lambda m, a: PAYMENT_PROVIDER_LABELS.get(m.provider, m.provider),
        Payment.amount: format_money,
        Payment.created_at: lambda m, a: format_optional_datetime(m.created_at),
    }

    column_formatters_detail = {
        Payment.status: lambda m, a: get_status_label(m.status),
        Payment.provider: lambda m, a: PAYMENT_PROVIDER_LABELS.get(m.provider, m.provider),
        Payment.amount: format_money,
        Payment.created_at: lambda m, a: format_optional_datetime(
            m.created_at, DETAIL_DATETIME_FORMAT
        ),
        Payment.updated_at: lambda m, a: format_optional_datetime(
            m.updated_at, DETAIL_DATETIME_FORMAT
        ),
    }

    # Платежи создаются только через API оплаты
    can_create = False
    can_edit = False
    can_delete = False

    page_size = 50
    page_size_options = [25, 50, 100, 200]

    can_export = True
    export_types = ["csv"]


class ProductAdmin(ModelView, model=Product):
    """Представление товаров: цены и остатки."""

    name = "Товар"
    name_plural = "Товары"
    icon = "fa-solid fa-cheese"

    column_labels = {
        Product.id: "ID",
        Product.slug: "Slug",
        Product.title: "Название",
        Product.price_cents: "Цена (копейки)",
        Product.currency: "Валюта",
        Product.quantity: "Остаток",
        Product.in_stock: "В наличии",
        Product.created_at: "Дата добавления",
    }

    column_list = [
        Product.id,
        Product.title,
        Product.price_cents,
        Product.quantity,
        Product.in_stock,
    ]

    column_searchable_list = [Product.title, Product.slug]
    column_sortable_list = [Product.id, Product.title, Product.price_cents, Product.quantity]

    column_formatters = {
        Product.price_cents: lambda m, a: f"{format_minor_units(m.price_cents)} {m.currency}",
        Product.in_stock: lambda m, a: "Да" if m.in_stock else "Нет",
    }

    form_excluded_columns = [Product.created_at]

    can_delete = False


class UserAdmin(ModelView, model=User):
    """Представление покупателей."""

    name = "Покупатель"
    name_plural = "Покупатели"
    icon = "fa-solid fa-user"

    column_labels = {
        User.id: "ID",
        User.email: "Email",
        User.name: "Имя",
        User.role: "Роль",
        User.created_at: "Дата регистрации",
    }

    column_list = [User.id, User.email, User.name, User.role, User.created_at]
    column_searchable_list = [User.email, User.name]
    column_default_sort = [(User.created_at, True)]

    column_formatters = {
        User.role: lambda m, a: USER_ROLE_LABELS.get(m.role, m.role),
        User.created_at: lambda m, a: format_optional_datetime(m.created_at),
    }

    can_create = False
    can_edit = False
    can_delete = False
