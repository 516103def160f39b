"""Financial record listing, monthly generation and state transitions"""

import logging
from datetime import date
from typing import NoReturn, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from billing_engine.api.v1.schemas import (
    EnsureMonthResponse,
    RecordListResponse,
    RecordSchema,
    SettleRequest,
    ValueAdjustmentRequest,
)
from billing_engine.api.dependencies import get_request_id, get_store, parse_month, parse_record_id
from billing_engine.config import settings
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository
from billing_engine.domain.models import FinancialRecord
from billing_engine.domain.lifecycle import (
    adjust_record_value,
    list_month_records,
    list_pending_records,
    reopen_record,
    settle_record,
    validate_status_filter,
)
from billing_engine.domain.monthly_records import ensure_records_for_month
from billing_engine.domain.stats import derived_status
from billing_engine.domain.exceptions import (
    ImmutableRecordError,
    InvalidInputError,
    RecordNotFoundError,
    StoreUnavailableError,
)
from billing_engine.infrastructure.observability.metrics import (
    lifecycle_transition_counter,
    monthly_records_created_counter,
)
from billing_engine.infrastructure.observability.logging import log_month_generation, log_record_transition
from billing_engine.utils.date_utils import utc_today

router = APIRouter()


def to_record_schema(record: FinancialRecord, status: str) -> RecordSchema:
    return RecordSchema(
        id=str(record.id),
        client_id=str(record.client_id),
        plan_id=str(record.plan_id),
        client_plan_id=str(record.client_plan_id),
        original_value=float(record.original_value),
        value=float(record.value),
        due_date=record.due_date,
        payment_date=record.payment_date,
        status=record.status,
        derived_status=status,
        payment_method=record.payment_method,
        change_reason=record.change_reason,
        observations=record.observations,
    )


def _raise_http(e: Exception, request_id: str) -> NoReturn:
    if isinstance(e, RecordNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ImmutableRecordError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidInputError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, StoreUnavailableError):
        logging.error(f"Store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Billing store unavailable")
    logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")


def ensure_month_records(store: FinancialRecordRepository, year: int, month: int, request_id: str) -> int:
    """Generate a month's missing records with the configured payment method fallback"""
    created = ensure_records_for_month(
        store,
        year,
        month,
        default_payment_method=settings.default_payment_method,
        request_id=request_id,
    )
    if created:
        monthly_records_created_counter.inc(created)
    log_month_generation(request_id, year, month, created)
    return created


@router.get("/records", response_model=RecordListResponse)
def list_records(
    month: str = Query(..., description="Month to view (YYYY-MM); missing records are generated"),
    status: Optional[str] = Query(None, description="pending | settled | overdue"),
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """
    Records due in a month with derived status (overdue = pending and past due).

    Viewing a month generates its missing records first.
    """
    year, month_number = parse_month(month)
    try:
        if status is not None:
            validate_status_filter(status)
        ensure_month_records(store, year, month_number, request_id)
        rows = list_month_records(store, year, month_number, status=status, today=utc_today())
    except Exception as e:
        _raise_http(e, request_id)

    return RecordListResponse(records=[to_record_schema(record, s) for record, s in rows])


@router.get("/records/pending", response_model=RecordListResponse)
def get_pending_records(
    client_id: Optional[str] = Query(None, description="Restrict to one client"),
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """All unpaid records, earliest due first"""
    client_uuid = parse_record_id(client_id) if client_id else None
    try:
        records = list_pending_records(store, client_id=client_uuid)
    except StoreUnavailableError as e:
        _raise_http(e, request_id)

    today = utc_today()
    return RecordListResponse(records=[to_record_schema(r, derived_status(r, today)) for r in records])


@router.post("/months/{year}/{month}/records", response_model=EnsureMonthResponse)
def ensure_month(
    year: int,
    month: int,
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """Generate the missing pending records of every active subscription for a month (idempotent)"""
    try:
        created = ensure_month_records(store, year, month, request_id)
    except Exception as e:
        _raise_http(e, request_id)

    return EnsureMonthResponse(year=year, month=month, created=created)


@router.post("/records/{record_id}/settle", response_model=RecordSchema)
def settle(
    record_id: str,
    request_body: Optional[SettleRequest] = None,
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """Mark a pending record as paid"""
    record_uuid = parse_record_id(record_id)
    payment_date: Optional[date] = request_body.payment_date if request_body else None
    try:
        record = settle_record(store, record_uuid, payment_date=payment_date)
    except (RecordNotFoundError, ImmutableRecordError, StoreUnavailableError) as e:
        _raise_http(e, request_id)

    lifecycle_transition_counter.labels(transition="settle").inc()
    log_record_transition(request_id, record_id, "settle")
    return to_record_schema(record, derived_status(record, utc_today()))


@router.post("/records/{record_id}/reopen", response_model=RecordSchema)
def reopen(
    record_id: str,
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """Revert a settlement; the record becomes pending with no payment date"""
    record_uuid = parse_record_id(record_id)
    try:
        record = reopen_record(store, record_uuid)
    except (RecordNotFoundError, InvalidInputError, StoreUnavailableError) as e:
        _raise_http(e, request_id)

    lifecycle_transition_counter.labels(transition="reopen").inc()
    log_record_transition(request_id, record_id, "reopen")
    return to_record_schema(record, derived_status(record, utc_today()))


@router.patch("/records/{record_id}/value", response_model=RecordSchema)
def adjust_value(
    record_id: str,
    request_body: ValueAdjustmentRequest,
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """Change the payable amount of a pending record, keeping original_value for audit"""
    record_uuid = parse_record_id(record_id)
    try:
        record = adjust_record_value(store, record_uuid, request_body.value, request_body.reason)
    except (RecordNotFoundError, ImmutableRecordError, InvalidInputError, StoreUnavailableError) as e:
        _raise_http(e, request_id)

    lifecycle_transition_counter.labels(transition="adjust_value").inc()
    log_record_transition(request_id, record_id, "adjust_value")
    return to_record_schema(record, derived_status(record, utc_today()))
