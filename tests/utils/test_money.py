"""Тесты для перевода денежных сумм (utils/money.py).

Модуль тестирует:
- to_minor_units — строки, числа и Decimal в копейки
- to_decimal и format_minor_units — копейки в десятичное представление
- Отказ на нечисловых и бесконечных значениях
"""

from decimal import Decimal

import pytest

from gastroshop.utils.money import format_minor_units, to_decimal, to_minor_units

# ==============================================================================
# ТЕСТЫ to_minor_units
# ==============================================================================


class TestToMinorUnits:
    """Тесты для перевода рублей в копейки."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("100.00", 10000),
            ("99.9", 9990),
            ("0.01", 1),
            (100, 10000),
            (Decimal("12.34"), 1234),
            (0, 0),
        ],
    )
    def test_valid_values(self, value: str | int | Decimal, expected: int) -> None:
        """Десятичные строки, целые и Decimal переводятся точно."""
        assert to_minor_units(value) == expected

    def test_float_without_binary_error(self) -> None:
        """float идёт через str(): 0.1 + 0.2 не превращается в 30.000000000000004 копеек."""
        assert to_minor_units(19.99) == 1999
        assert to_minor_units(0.1 + 0.2) == 30

    def test_rounds_half_up(self) -> None:
        """Доли копейки округляются по правилу half-up."""
        assert to_minor_units("0.005") == 1
        assert to_minor_units("0.004") == 0

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", "1e30"])
    def test_invalid_values_raise(self, value: str) -> None:
        """Нечисловые, бесконечные и слишком длинные значения отклоняются."""
        with pytest.raises(ValueError, match="Некорректная сумма"):
            to_minor_units(value)


# ==============================================================================
# ТЕСТЫ ОБРАТНОГО ПЕРЕВОДА
# ==============================================================================


class TestFormatMinorUnits:
    """Тесты для перевода копеек в десятичное представление."""

    def test_to_decimal(self) -> None:
        """Копейки → Decimal с двумя знаками."""
        assert to_decimal(12345) == Decimal("123.45")
        assert str(to_decimal(10000)) == "100.00"

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(10000, "100.00"), (5, "0.05"), (1999, "19.99"), (0, "0.00")],
    )
    def test_format(self, amount: int, expected: str) -> None:
        """Строка для API провайдеров всегда с двумя знаками."""
        assert format_minor_units(amount) == expected

    def test_provider_amount_survives_round_trip(self) -> None:
        """Сумма провайдера "100.00" даёт 10000 копеек и обратно "100.00"."""
        assert format_minor_units(to_minor_units("100.00")) == "100.00"
