"""Monthly record generation for active subscriptions"""

import logging
from datetime import date
from typing import Optional
from billing_engine.domain.models import ClientPlanLink, FinancialRecord, STATUS_PENDING
from billing_engine.domain.exceptions import DomainException, InvalidInputError
from billing_engine.domain.store import FinancialStore
from billing_engine.utils.date_utils import clamp_day_to_month

DEFAULT_PAYMENT_METHOD = "not_informed"


def validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidInputError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise InvalidInputError(f"year out of range: {year}")


def due_date_for_month(link: ClientPlanLink, year: int, month: int) -> date:
    """Anchor day-of-month of the link, clamped into year/month"""
    return date(year, month, clamp_day_to_month(year, month, link.payment_date.day))


def build_monthly_record(
    link: ClientPlanLink,
    year: int,
    month: int,
    default_payment_method: str = DEFAULT_PAYMENT_METHOD,
) -> FinancialRecord:
    return FinancialRecord(
        client_id=link.client_id,
        plan_id=link.plan_id,
        client_plan_id=link.id,
        original_value=link.value,
        value=link.value,
        due_date=due_date_for_month(link, year, month),
        status=STATUS_PENDING,
        payment_method=link.payment_method or default_payment_method,
    )


def ensure_records_for_month(
    store: FinancialStore,
    year: int,
    month: int,
    default_payment_method: str = DEFAULT_PAYMENT_METHOD,
    request_id: Optional[str] = None,
) -> int:
    """
    Make sure every active subscription has a pending record in the given month.

    Requirements:
    - Idempotent: existence is checked per (client_plan_id, year, month) before insert
    - Best effort: one link failing is logged and does not stop the others

    Returns:
        Number of records created
    """
    validate_month(year, month)

    created = 0
    for link in store.list_active_links():
        try:
            if store.record_exists_for_month(link.id, year, month):
                continue
            store.insert_record(build_monthly_record(link, year, month, default_payment_method))
            created += 1
        except DomainException as e:
            logging.warning(
                f"Monthly record generation failed for link {link.id}: {e}",
                extra={"request_id": request_id, "client_plan_id": str(link.id), "year": year, "month": month},
            )

    return created
