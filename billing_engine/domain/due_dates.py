"""Due-date updates with optional cascade to future pending installments"""

import logging
import uuid
from datetime import date
from typing import List, Optional
from billing_engine.domain.models import (
    CascadePreview,
    CascadeResult,
    DueDateChange,
    FinancialRecord,
    STATUS_PENDING,
)
from billing_engine.domain.exceptions import StoreUnavailableError
from billing_engine.domain.lifecycle import update_pending_record
from billing_engine.domain.store import FinancialStore
from billing_engine.utils.date_utils import with_day

IMMUTABLE_DUE_DATE_MESSAGE = (
    "Settled records cannot have their due date changed. Reopen the record first."
)


def _future_pending_records(
    store: FinancialStore,
    record_id: uuid.UUID,
    client_plan_id: uuid.UUID,
    current_due_date: date,
) -> List[FinancialRecord]:
    # Strictly later than the edited record; earlier or same-day records are never touched
    return store.list_records(
        client_plan_id=client_plan_id,
        exclude_id=record_id,
        status=STATUS_PENDING,
        due_date_after=current_due_date,
    )


def preview_future_records(
    store: FinancialStore,
    record_id: uuid.UUID,
    client_plan_id: uuid.UUID,
    current_due_date: date,
) -> CascadePreview:
    """Dry run: list the records a cascading update would rewrite, without mutating anything"""
    return CascadePreview(
        records=_future_pending_records(store, record_id, client_plan_id, current_due_date)
    )


def cascaded_due_date(current: date, new_day: int) -> date:
    """
    Import only the day-of-month; the record keeps its own year/month.

    Example:
        2025-02-05 with new_day=31 → 2025-02-28 (clamped, never rolls into March)
    """
    return with_day(current, new_day)


def update_due_date(
    store: FinancialStore,
    record_id: uuid.UUID,
    new_due_date: date,
    apply_to_future: bool = False,
    request_id: Optional[str] = None,
) -> CascadeResult:
    """
    Change a record's due date and optionally cascade the new day-of-month.

    Flow:
    1. Conditional update of the target (must still be pending)
    2. If apply_to_future: every later pending record of the same client-plan link
       gets the new day clamped into its own month
    3. Cascade writes are independent; a failed one is logged and skipped

    Raises:
        RecordNotFoundError: Target record does not exist
        ImmutableRecordError: Target record is settled (also when settled concurrently)
    """
    target = update_pending_record(
        store,
        record_id,
        {"due_date": new_due_date},
        immutable_message=IMMUTABLE_DUE_DATE_MESSAGE,
    )
    old_due_date = target.due_date

    affected = [DueDateChange(record_id=record_id, old_due_date=old_due_date, new_due_date=new_due_date)]

    if not apply_to_future:
        return CascadeResult(affected_records=affected)

    candidates = _future_pending_records(store, record_id, target.client_plan_id, old_due_date)
    new_day = new_due_date.day

    for record in candidates:
        adjusted = cascaded_due_date(record.due_date, new_day)
        try:
            updated = store.update_record(
                record.id,
                {"due_date": adjusted},
                expected_status=STATUS_PENDING,
            )
        except StoreUnavailableError as e:
            logging.warning(
                f"Cascade skipped record {record.id}: {e}",
                extra={"request_id": request_id, "record_id": str(record.id), "target_record_id": str(record_id)},
            )
            continue

        if not updated:
            logging.warning(
                f"Cascade skipped record {record.id}: no longer pending",
                extra={"request_id": request_id, "record_id": str(record.id), "target_record_id": str(record_id)},
            )
            continue

        affected.append(DueDateChange(record_id=record.id, old_due_date=record.due_date, new_due_date=adjusted))

    return CascadeResult(affected_records=affected, candidate_count=len(candidates))
