"""Late-payment charges: flat penalty (multa) + simple daily interest (mora)"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
from billing_engine.domain.models import LateFeeQuote
from billing_engine.domain.exceptions import InvalidInputError
from billing_engine.utils.date_utils import days_between, parse_iso_date, utc_today

DEFAULT_PENALTY_RATE = Decimal("2")
DEFAULT_DAILY_INTEREST_RATE = Decimal("1")

CENTS = Decimal("0.01")


def parse_amount(value: Any, field_name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field_name} is required and must be numeric")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f"{field_name} must be numeric, got {value!r}") from e
    if not result.is_finite():
        raise InvalidInputError(f"{field_name} must be a finite number")
    return result


def _to_date(value: Any, field_name: str) -> date:
    if value is None or value == "":
        raise InvalidInputError(f"{field_name} is required")
    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise InvalidInputError(f"{field_name} is not a valid ISO date: {value!r}") from e


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_late_fee(
    amount_due: Any,
    due_date: Any,
    payment_date: Any = None,
    penalty_rate: Any = DEFAULT_PENALTY_RATE,
    daily_interest_rate: Any = DEFAULT_DAILY_INTEREST_RATE,
) -> LateFeeQuote:
    """
    Quote the charges owed when paying amount_due on payment_date.

    Rules:
    - No charges when paid on or before the due date
    - Penalty: amount_due * penalty_rate%, charged once regardless of delay
    - Interest: amount_due * daily_interest_rate% * days_late, non-compounding
    - Full precision internally, half-up rounding to cents on output only

    Args:
        amount_due: Positive amount (Decimal, int, float or numeric string)
        due_date: Contractual due date (date or ISO string)
        payment_date: Actual/expected payment date (default: today, UTC)
        penalty_rate: Flat penalty percent (default 2)
        daily_interest_rate: Interest percent per day late (default 1)

    Raises:
        InvalidInputError: amount_due <= 0, missing/unparseable dates, negative rates

    Example:
        1000.00 due 2025-01-10, paid 2025-01-15
        → 5 days late, penalty 20.00, interest 50.00, final 1070.00
    """
    amount = parse_amount(amount_due, "amount_due")
    if amount <= 0:
        raise InvalidInputError("amount_due must be a positive number")

    due = _to_date(due_date, "due_date")
    paid = utc_today() if payment_date is None else _to_date(payment_date, "payment_date")

    penalty_pct = parse_amount(penalty_rate, "penalty_rate")
    interest_pct = parse_amount(daily_interest_rate, "daily_interest_rate")
    if penalty_pct < 0 or interest_pct < 0:
        raise InvalidInputError("Rates must not be negative")

    days_late = days_between(due, paid)

    penalty = Decimal(0)
    interest = Decimal(0)
    if days_late > 0:
        penalty = amount * penalty_pct / 100
        interest = amount * interest_pct / 100 * days_late

    total_charges = penalty + interest

    return LateFeeQuote(
        original_value=_money(amount),
        days_late=days_late,
        penalty_amount=_money(penalty),
        interest_amount=_money(interest),
        total_charges=_money(total_charges),
        final_amount=_money(amount + total_charges),
        penalty_rate=penalty_pct,
        daily_interest_rate=interest_pct,
    )
