"""Due-date preview and commit endpoints"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from billing_engine.api.v1.schemas import (
    CascadePreviewItem,
    CascadePreviewResponse,
    DueDateChangeSchema,
    DueDateUpdateRequest,
    DueDateUpdateResponse,
)
from billing_engine.api.dependencies import get_request_id, get_store, parse_record_id
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository
from billing_engine.domain.due_dates import preview_future_records, update_due_date
from billing_engine.domain.lifecycle import get_record_or_raise
from billing_engine.domain.exceptions import (
    ImmutableRecordError,
    RecordNotFoundError,
    StoreUnavailableError,
)
from billing_engine.infrastructure.observability.metrics import due_date_update_counter, record_due_date_update
from billing_engine.infrastructure.observability.logging import log_due_date_update

router = APIRouter()


@router.get("/records/{record_id}/due-date/preview", response_model=CascadePreviewResponse)
def preview_due_date_cascade(
    record_id: str,
    client_plan_id: Optional[str] = Query(None, description="Subscription link; defaults to the record's own"),
    current_due_date: Optional[date] = Query(None, description="Defaults to the record's stored due date"),
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """
    Dry run of a cascading due-date change.

    Lists the later pending records of the same client-plan link that a commit
    with apply_to_future=true would rewrite. Nothing is modified.
    """
    record_uuid = parse_record_id(record_id)
    link_uuid = parse_record_id(client_plan_id) if client_plan_id else None

    try:
        if link_uuid is None or current_due_date is None:
            record = get_record_or_raise(store, record_uuid)
            link_uuid = link_uuid or record.client_plan_id
            current_due_date = current_due_date or record.due_date

        preview = preview_future_records(store, record_uuid, link_uuid, current_due_date)

    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except StoreUnavailableError as e:
        logging.error(f"Store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Billing store unavailable")

    return CascadePreviewResponse(
        count=preview.count,
        records=[CascadePreviewItem(id=str(r.id), due_date=r.due_date) for r in preview.records],
    )


@router.post("/records/{record_id}/due-date", response_model=DueDateUpdateResponse)
def commit_due_date_update(
    record_id: str,
    request_body: DueDateUpdateRequest,
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """
    Change a record's due date, optionally cascading the day-of-month.

    Flow:
    1. Conditionally update the target (must still be pending)
    2. If apply_to_future: rewrite later pending records of the same link,
       keeping each record's month and clamping the day (31 → Feb 28/29)
    3. Report every rewritten record; skipped cascade records show up as
       updated_count < candidate_count + 1
    """
    start_time = time.time()
    record_uuid = parse_record_id(record_id)

    try:
        result = update_due_date(
            store,
            record_uuid,
            request_body.new_due_date,
            apply_to_future=request_body.apply_to_future,
            request_id=request_id,
        )

    except RecordNotFoundError as e:
        due_date_update_counter.labels(outcome="not_found").inc()
        raise HTTPException(status_code=404, detail=str(e))

    except ImmutableRecordError as e:
        due_date_update_counter.labels(outcome="immutable").inc()
        raise HTTPException(status_code=409, detail=str(e))

    except StoreUnavailableError as e:
        due_date_update_counter.labels(outcome="store_error").inc()
        logging.error(f"Store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Billing store unavailable")

    except Exception as e:
        due_date_update_counter.labels(outcome="error").inc()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    record_due_date_update(cascaded=result.updated_count - 1, skipped=result.skipped_count)
    log_due_date_update(request_id, record_id, result, request_body.apply_to_future, duration_ms)

    return DueDateUpdateResponse(
        updated_count=result.updated_count,
        candidate_count=result.candidate_count,
        affected_records=[
            DueDateChangeSchema(
                id=str(change.record_id),
                old_due_date=change.old_due_date,
                new_due_date=change.new_due_date,
            )
            for change in result.affected_records
        ],
    )
