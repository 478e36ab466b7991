"""Unit tests for the pure billing computation."""

from decimal import Decimal

import pytest

from rentbill.errors import ValidationError
from rentbill.services.billing_engine import (
    Rates,
    Readings,
    calculate_charges,
    money_amount,
    non_negative_amount,
    parse_month_year,
    sum_items,
    to_decimal,
    to_money,
    validate_reading,
)

RATES = Rates(water=Decimal("18"), elec=Decimal("7"))


class TestCalculateCharges:
    """Usage, cost and total computation."""

    def test_reference_example(self) -> None:
        """100/200 -> 110/230 at 18/7 with rent 3000 totals 3390."""
        calc = calculate_charges(
            previous=Readings(water=100, elec=200),
            current=Readings(water=110, elec=230),
            rates=RATES,
            base_rent=Decimal("3000"),
        )

        assert calc.usage.water == 10
        assert calc.usage.elec == 30
        assert calc.costs.water == Decimal("180")
        assert calc.costs.elec == Decimal("210")
        assert calc.costs.rent == Decimal("3000")
        assert calc.total_amount == Decimal("3390")
        assert calc.prev_readings == Readings(100, 200)
        assert calc.current_readings == Readings(110, 230)

    def test_zero_usage_gives_zero_costs(self) -> None:
        calc = calculate_charges(
            previous=Readings(50, 60), current=Readings(50, 60), rates=RATES, base_rent=Decimal("2500")
        )

        assert calc.usage == (0, 0)
        assert calc.costs.water == 0
        assert calc.costs.elec == 0
        assert calc.total_amount == Decimal("2500")

    def test_water_regression_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Water reading"):
            calculate_charges(Readings(100, 200), Readings(99, 230), RATES, Decimal("3000"))

    def test_electricity_regression_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Electricity reading"):
            calculate_charges(Readings(100, 200), Readings(110, 199), RATES, Decimal("3000"))

    def test_negative_reading_rejected(self) -> None:
        with pytest.raises(ValidationError, match="cannot be negative"):
            calculate_charges(Readings(0, 0), Readings(-1, 0), RATES, Decimal("3000"))

    def test_fractional_rates_sum_exactly(self) -> None:
        """Decimal rates accumulate without binary float drift."""
        calc = calculate_charges(
            previous=Readings(0, 0),
            current=Readings(3, 3),
            rates=Rates(water=Decimal("0.1"), elec=Decimal("0.2")),
            base_rent=Decimal("0"),
        )

        assert calc.total_amount == Decimal("0.9")

    def test_identical_inputs_give_identical_output(self) -> None:
        args = (Readings(100, 200), Readings(110, 230), RATES, Decimal("3000"))

        assert calculate_charges(*args) == calculate_charges(*args)


class TestValidateReading:
    def test_accepts_whole_units(self) -> None:
        assert validate_reading(0, "Water reading") == 0
        assert validate_reading(1234, "Water reading") == 1234

    @pytest.mark.parametrize("value", [1.5, "10", True, None])
    def test_rejects_non_integers(self, value) -> None:
        with pytest.raises(ValidationError, match="whole number"):
            validate_reading(value, "Water reading")


class TestParseMonthYear:
    def test_valid_period(self) -> None:
        assert parse_month_year("2024-03") == (2024, 3)

    @pytest.mark.parametrize("value", ["2024-3", "2024-13", "2024-00", "24-03", "", "2024/03"])
    def test_malformed_period(self, value) -> None:
        with pytest.raises(ValidationError, match="YYYY-MM"):
            parse_month_year(value)


class TestAmounts:
    def test_to_decimal_from_float_uses_repr(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", ["abc", None, True, "NaN", "Infinity"])
    def test_to_decimal_rejects_non_numbers(self, value) -> None:
        with pytest.raises(ValidationError):
            to_decimal(value, "Amount")

    def test_to_money_rounds_half_up(self) -> None:
        assert to_money(Decimal("1.005")) == Decimal("1.01")
        assert to_money(Decimal("1.004")) == Decimal("1.00")
        assert to_money(Decimal("3390")) == Decimal("3390.00")

    def test_sum_items_is_exact(self) -> None:
        assert sum_items([Decimal("0.1")] * 10) == Decimal("1.0")
        assert sum_items([]) == Decimal("0")

    def test_non_negative_amount(self) -> None:
        assert non_negative_amount(0, "Cleaning fee") == Decimal("0")
        with pytest.raises(ValidationError, match="Cleaning fee cannot be negative"):
            non_negative_amount(Decimal("-1"), "Cleaning fee")

    @pytest.mark.parametrize("value", ["3390", "3390.5", "3390.50", 0, Decimal("0.01")])
    def test_money_amount_accepts_whole_cents(self, value) -> None:
        assert money_amount(value) == Decimal(str(value))

    @pytest.mark.parametrize("value", ["0.005", Decimal("10.001"), "1e-3"])
    def test_money_amount_rejects_fractions_of_a_cent(self, value) -> None:
        with pytest.raises(ValidationError, match="Deposit amount cannot have more than 2 decimal places"):
            money_amount(value, "Deposit amount")
