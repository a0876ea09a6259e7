"""Перевод денежных сумм между представлениями.

Внутри приложения суммы хранятся целым числом минорных единиц (копеек).
Провайдеры принимают и присылают десятичные строки ("100.00") или числа.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from gastroshop.config.constants import MINOR_UNITS_PER_MAJOR

_CENT = Decimal("0.01")


def to_minor_units(value: str | int | float | Decimal) -> int:
    """Перевести сумму в основных единицах в минорные.

    Args:
        value: Сумма в рублях: "100.00", "99.9", 100 или Decimal.
            float переводится через str(), чтобы не тащить двоичную погрешность.

    Returns:
        Сумма в копейках (100.00 → 10000).

    Raises:
        ValueError: Если значение не является конечным числом.
    """
    if isinstance(value, float):
        value = str(value)

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Некорректная сумма: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Некорректная сумма: {value!r}")

    # quantize падает, если в числе больше знаков, чем точность контекста (1e30)
    try:
        minor = (amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Некорректная сумма: {value!r}") from e
    return int(minor)


def to_decimal(amount_minor_units: int) -> Decimal:
    """Перевести копейки в Decimal с двумя знаками (10000 → Decimal("100.00"))."""
    return (Decimal(amount_minor_units) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def format_minor_units(amount_minor_units: int) -> str:
    """Перевести копейки в десятичную строку для API провайдеров (10000 → "100.00")."""
    return f"{to_decimal(amount_minor_units):.2f}"
