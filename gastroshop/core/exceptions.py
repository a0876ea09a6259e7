"""Централизованные исключения приложения.

Все кастомные исключения проекта собраны здесь:
`from gastroshop.core.exceptions import SomeError`

Организация по доменам:
- Database: ошибки работы с БД
- Orders: заказы и их статусы
- Payment Service: выбор провайдера, поиск платежей
- Payment Providers: ошибки провайдеров и проверки webhook'ов
"""

from typing_extensions import override

# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================


class DatabaseError(Exception):
    """Базовое исключение для ошибок работы с БД."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        """Создать исключение БД.

        Args:
            message: Описание ошибки.
            retryable: Можно ли повторить операцию (True для временных сбоев).
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable


# =============================================================================
# ORDER EXCEPTIONS
# =============================================================================
# Заказы создаёт оформление корзины, статусы меняют платежи и админка.
# =============================================================================


class OrderNotFoundError(Exception):
    """Заказ не найден."""

    def __init__(self, order_id: int) -> None:
        """Создать исключение.

        Args:
            order_id: ID заказа, который не найден.
        """
        super().__init__(f"Заказ не найден: {order_id}")
        self.order_id = order_id


class InvalidOrderError(Exception):
    """Заказ нельзя создать или оплатить.

    Пустая корзина, неизвестный товар, товара нет в наличии,
    нулевая сумма заказа.
    """

    def __init__(self, message: str) -> None:
        """Создать исключение.

        Args:
            message: Причина, понятная покупателю.
        """
        super().__init__(message)
        self.message = message


class InvalidStatusTransitionError(Exception):
    """Недопустимый переход статуса заказа."""

    def __init__(self, current: str, target: str) -> None:
        """Создать исключение.

        Args:
            current: Текущий статус заказа.
            target: Запрошенный статус.
        """
        super().__init__(f"Нельзя перевести заказ из статуса '{current}' в '{target}'")
        self.current = current
        self.target = target


# =============================================================================
# PAYMENT SERVICE EXCEPTIONS
# =============================================================================


class UnsupportedProviderError(Exception):
    """Провайдер неизвестен или для него не хватает настроек.

    Ошибка конфигурации: операция с таким провайдером невозможна.
    """

    def __init__(self, provider: str) -> None:
        """Создать исключение.

        Args:
            provider: Имя провайдера.
        """
        super().__init__(f"Платёжный провайдер не поддерживается: {provider}")
        self.provider = provider


class PaymentNotFoundError(Exception):
    """Платёж с таким ID провайдера не найден."""

    def __init__(self, payment_id: str) -> None:
        """Создать исключение.

        Args:
            payment_id: ID платежа у провайдера.
        """
        super().__init__(f"Платёж не найден: {payment_id}")
        self.payment_id = payment_id


# =============================================================================
# PAYMENT PROVIDER EXCEPTIONS
# =============================================================================
# Иерархия: PaymentError -> ProviderError, InvalidSignatureError,
# MalformedPayloadError.
# =============================================================================


class PaymentError(Exception):
    """Ошибка при работе с платёжным провайдером.

    Attributes:
        message: Человекочитаемое описание ошибки.
        provider: Название провайдера (mock, yookassa, cloudpayments).
        is_retryable: Можно ли повторить операцию (True для временных ошибок).
        original_error: Оригинальное исключение (httpx, json и т.д.).
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        is_retryable: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        """Создать ошибку платежа.

        Args:
            message: Описание ошибки.
            provider: Название провайдера.
            is_retryable: Можно ли повторить операцию.
            original_error: Оригинальное исключение.
        """
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.is_retryable = is_retryable
        self.original_error = original_error

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"[{self.provider}] {self.message}"


class ProviderError(PaymentError):
    """Сбой запроса к API провайдера.

    Сеть, таймаут, ответ не 2xx, ответ без обязательных полей.
    Автоматических повторов нет: ошибка сразу уходит вызывающему коду.
    """


class InvalidSignatureError(PaymentError):
    """Подпись webhook'а не совпала.

    Такой запрос отклоняется целиком и не меняет состояние БД.
    """


class MalformedPayloadError(PaymentError):
    """Тело webhook'а не разбирается в ожидаемую структуру."""
