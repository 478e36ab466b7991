"""Pure billing computation: usage, charges, move-out settlement and late fees.

Nothing here touches the database. Amounts are exact Decimals throughout;
rounding to two places happens only when values are presented (to_money).
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, NamedTuple

from rentbill.errors import ValidationError

MONEY = Decimal("0.01")
ZERO = Decimal("0")

DEFAULT_DUE_DAY = 5
DEFAULT_LATE_FEE_PER_DAY = Decimal("50")

_MONTH_YEAR_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


class Readings(NamedTuple):
    """Water and electricity meter values for one point in time."""

    water: int
    elec: int


class Usage(NamedTuple):
    """Units consumed between two readings."""

    water: int
    elec: int


class Rates(NamedTuple):
    """Price per unit of water and electricity."""

    water: Decimal
    elec: Decimal


class Costs(NamedTuple):
    """Per-category charges for a period."""

    water: Decimal
    elec: Decimal
    rent: Decimal


class Calculation(NamedTuple):
    """Result of a billing preview."""

    prev_readings: Readings
    current_readings: Readings
    usage: Usage
    rates: Rates
    costs: Costs
    total_amount: Decimal


class MoveOutSettlement(NamedTuple):
    """Deposit accounting at the end of a tenancy.

    refund is negative when deductions exceed the deposit; the tenant then
    forfeits the whole deposit and still owes abs(refund).
    """

    period_total: Decimal
    cleaning_fee: Decimal
    damage_fee: Decimal
    total_deductions: Decimal
    deposit: Decimal
    refund: Decimal

    @property
    def tenant_owes(self) -> bool:
        return self.refund < 0

    @property
    def amount_owed(self) -> Decimal:
        return -self.refund if self.refund < 0 else ZERO

    @property
    def amount_refunded(self) -> Decimal:
        return self.refund if self.refund > 0 else ZERO


class LateFee(NamedTuple):
    """Late fee due on an unpaid invoice."""

    due_date: date
    days_late: int
    late_fee: Decimal


def to_decimal(value, field: str = "amount") -> Decimal:
    """Convert an int, str or Decimal into an exact Decimal.

    Floats are converted through their shortest repr so 0.1 becomes
    Decimal("0.1"), not the binary approximation.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_money(value: Decimal) -> Decimal:
    """Round an amount to two places for presentation."""
    return value.quantize(MONEY, rounding=ROUND_HALF_UP)


def sum_items(amounts: Iterable[Decimal]) -> Decimal:
    """Exact sum of line item amounts."""
    return sum(amounts, ZERO)


def money_amount(value, field: str = "amount") -> Decimal:
    """Exact Decimal for an amount that is stored as-is in a two-place column.

    Raises:
        ValidationError: If the value is not a number or has fractions of a cent
    """
    amount = to_decimal(value, field)
    if amount != amount.quantize(MONEY):
        raise ValidationError(f"{field} cannot have more than 2 decimal places")
    return amount


def non_negative_amount(value, field: str) -> Decimal:
    amount = money_amount(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def validate_reading(value, field: str) -> int:
    """Meter readings are non-negative whole units."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number")
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    return value


def parse_month_year(month_year: str) -> tuple[int, int]:
    """Parse a YYYY-MM period key.

    Returns:
        (year, month)

    Raises:
        ValidationError: If the key is malformed
    """
    match = _MONTH_YEAR_RE.match(month_year or "")
    if not match:
        raise ValidationError(f"Invalid billing period '{month_year}', expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def calculate_charges(
    previous: Readings,
    current: Readings,
    rates: Rates,
    base_rent: Decimal,
) -> Calculation:
    """Compute usage, costs and total for one period.

    Formula:
        usage = current - previous (per utility)
        cost = usage × rate
        total = water cost + electricity cost + rent

    Raises:
        ValidationError: If a current reading is below the previous one
    """
    current_water = validate_reading(current.water, "Water reading")
    current_elec = validate_reading(current.elec, "Electricity reading")

    if current_water < previous.water:
        raise ValidationError(
            f"Water reading ({current_water}) cannot be less than previous reading ({previous.water})"
        )
    if current_elec < previous.elec:
        raise ValidationError(
            f"Electricity reading ({current_elec}) cannot be less than previous reading "
            f"({previous.elec})"
        )

    usage = Usage(water=current_water - previous.water, elec=current_elec - previous.elec)
    exact_rates = Rates(
        water=to_decimal(rates.water, "Water rate"),
        elec=to_decimal(rates.elec, "Electricity rate"),
    )
    costs = Costs(
        water=usage.water * exact_rates.water,
        elec=usage.elec * exact_rates.elec,
        rent=to_decimal(base_rent, "Base rent"),
    )

    return Calculation(
        prev_readings=previous,
        current_readings=Readings(water=current_water, elec=current_elec),
        usage=usage,
        rates=exact_rates,
        costs=costs,
        total_amount=sum_items(costs),
    )


def settle_move_out(
    period_total: Decimal,
    cleaning_fee: Decimal,
    damage_fee: Decimal,
    deposit: Decimal,
) -> MoveOutSettlement:
    """Compute the deposit refund for a move-out.

    refund = deposit - (period total + cleaning + damage). The sign is kept.
    """
    cleaning = non_negative_amount(cleaning_fee, "Cleaning fee")
    damage = non_negative_amount(damage_fee, "Damage fee")
    held = to_decimal(deposit, "Deposit")
    total_deductions = to_decimal(period_total, "Period total") + cleaning + damage

    return MoveOutSettlement(
        period_total=to_decimal(period_total, "Period total"),
        cleaning_fee=cleaning,
        damage_fee=damage,
        total_deductions=total_deductions,
        deposit=held,
        refund=held - total_deductions,
    )


def due_date_for(month_year: str, due_day: int = DEFAULT_DUE_DAY) -> date:
    """Due date of an invoice: the due_day of its billing month."""
    year, month = parse_month_year(month_year)
    return date(year, month, due_day)


def compute_late_fee(
    month_year: str,
    now: date | datetime,
    per_day: Decimal = DEFAULT_LATE_FEE_PER_DAY,
    due_day: int = DEFAULT_DUE_DAY,
) -> LateFee | None:
    """Late fee for an invoice of month_year as of now.

    Days are counted in whole calendar days after the due date, so any time
    on the due date itself is not late.

    Returns:
        LateFee, or None when now is on or before the due date
    """
    today = now.date() if isinstance(now, datetime) else now
    due = due_date_for(month_year, due_day)
    days_late = (today - due).days
    if days_late <= 0:
        return None
    per_day = money_amount(per_day, "Late fee per day")
    return LateFee(due_date=due, days_late=days_late, late_fee=days_late * per_day)


__all__ = [
    "Calculation",
    "Costs",
    "LateFee",
    "MoveOutSettlement",
    "Rates",
    "Readings",
    "Usage",
    "calculate_charges",
    "compute_late_fee",
    "due_date_for",
    "money_amount",
    "non_negative_amount",
    "parse_month_year",
    "settle_move_out",
    "sum_items",
    "to_decimal",
    "to_money",
    "validate_reading",
]
