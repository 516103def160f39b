"""Financial record state transitions: settle, reopen, value adjustment"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional
from billing_engine.domain.models import (
    FinancialRecord,
    STATUS_PENDING,
    STATUS_SETTLED,
    STATUS_OVERDUE,
)
from billing_engine.domain.exceptions import (
    ImmutableRecordError,
    InvalidInputError,
    RecordNotFoundError,
)
from billing_engine.domain.late_fees import parse_amount
from billing_engine.domain.monthly_records import validate_month
from billing_engine.domain.stats import derived_status
from billing_engine.domain.store import FinancialStore
from billing_engine.utils.date_utils import month_bounds, utc_today


def get_record_or_raise(store: FinancialStore, record_id: uuid.UUID) -> FinancialRecord:
    record = store.get_record(record_id)
    if record is None:
        raise RecordNotFoundError(f"Financial record {record_id} not found")
    return record


def update_pending_record(
    store: FinancialStore,
    record_id: uuid.UUID,
    patch: Dict[str, Any],
    immutable_message: str,
) -> FinancialRecord:
    """
    Fetch-check-update a record that must still be pending.

    The write is conditional on status == pending, so a settlement racing
    between the read and the write turns into ImmutableRecordError instead
    of a silent change on a settled record.

    Returns:
        The record as it was before the update
    """
    record = get_record_or_raise(store, record_id)
    if record.is_settled:
        raise ImmutableRecordError(immutable_message)

    if not store.update_record(record_id, patch, expected_status=STATUS_PENDING):
        # Lost the race: figure out why
        current = get_record_or_raise(store, record_id)
        if current.is_settled:
            raise ImmutableRecordError(immutable_message)
        # Settled and reopened in between
        raise ImmutableRecordError(f"Financial record {record_id} changed concurrently, retry the operation")

    return record


def settle_record(
    store: FinancialStore,
    record_id: uuid.UUID,
    payment_date: Optional[date] = None,
) -> FinancialRecord:
    """Mark a pending record as paid (payment_date defaults to today, UTC)"""
    paid_on = payment_date or utc_today()
    update_pending_record(
        store,
        record_id,
        {"status": STATUS_SETTLED, "payment_date": paid_on},
        immutable_message="This record is already settled.",
    )
    return get_record_or_raise(store, record_id)


def reopen_record(store: FinancialStore, record_id: uuid.UUID) -> FinancialRecord:
    """Revert a settlement: back to pending, payment_date cleared"""
    record = get_record_or_raise(store, record_id)
    if not record.is_settled:
        raise InvalidInputError("Only settled records can be reopened")

    if not store.update_record(
        record_id,
        {"status": STATUS_PENDING, "payment_date": None},
        expected_status=STATUS_SETTLED,
    ):
        get_record_or_raise(store, record_id)
        raise InvalidInputError("Only settled records can be reopened")

    return get_record_or_raise(store, record_id)


def adjust_record_value(
    store: FinancialStore,
    record_id: uuid.UUID,
    new_value: Any,
    reason: str,
) -> FinancialRecord:
    """
    Change the payable amount of a pending record.

    original_value is left untouched; the change is explained in
    change_reason and an audit line in observations.
    """
    value = parse_amount(new_value, "value")
    if value <= 0:
        raise InvalidInputError("value must be a positive number")
    if not reason or not reason.strip():
        raise InvalidInputError("A reason is required to change the value")

    record = get_record_or_raise(store, record_id)
    observations = f"Value changed from {record.original_value:.2f} to {value:.2f}. Reason: {reason.strip()}"

    update_pending_record(
        store,
        record_id,
        {"value": value, "change_reason": reason.strip(), "observations": observations},
        immutable_message="Settled records cannot have their value changed. Reopen the record first.",
    )
    return get_record_or_raise(store, record_id)


def list_pending_records(
    store: FinancialStore,
    client_id: Optional[uuid.UUID] = None,
) -> List[FinancialRecord]:
    """Stored-pending records (including overdue ones), earliest due first"""
    return store.list_records(status=STATUS_PENDING, client_id=client_id)


def validate_status_filter(status: str) -> None:
    if status not in (STATUS_PENDING, STATUS_SETTLED, STATUS_OVERDUE):
        raise InvalidInputError(f"Unknown status filter: {status!r}")


def list_month_records(
    store: FinancialStore,
    year: int,
    month: int,
    status: Optional[str] = None,
    today: Optional[date] = None,
) -> List[tuple[FinancialRecord, str]]:
    """
    Records due in the given month paired with their derived status.

    Read only; callers that view a month run ensure_records_for_month first.
    """
    if status is not None:
        validate_status_filter(status)
    validate_month(year, month)

    today = today or utc_today()
    start, end = month_bounds(year, month)
    records = store.list_records(due_date_from=start, due_date_until=end)

    rows = [(record, derived_status(record, today)) for record in records]
    if status is not None:
        rows = [row for row in rows if row[1] == status]
    return rows

