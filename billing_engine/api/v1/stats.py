"""Aggregate billing stats (settled / pending / overdue, revenue, outstanding)"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query

from billing_engine.api.v1.schemas import StatsRequest, StatsResponse
from billing_engine.api.dependencies import get_request_id, get_store, parse_month
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository
from billing_engine.domain.models import FinancialStats
from billing_engine.api.v1.records import ensure_month_records
from billing_engine.domain.lifecycle import list_month_records
from billing_engine.domain.stats import compute_stats
from billing_engine.domain.exceptions import InvalidInputError, StoreUnavailableError
from billing_engine.utils.date_utils import utc_today

router = APIRouter()


def to_stats_response(stats: FinancialStats) -> StatsResponse:
    return StatsResponse(
        total=stats.total,
        settled=stats.settled,
        pending=stats.pending,
        overdue=stats.overdue,
        revenue=float(stats.revenue),
        outstanding=float(stats.outstanding),
    )


@router.post("/stats", response_model=StatsResponse)
def stats_for_records(request_body: StatsRequest):
    """Aggregate a caller-supplied record set; today defaults to the current UTC date"""
    today = request_body.today or utc_today()
    return to_stats_response(compute_stats(request_body.records, today))


@router.get("/stats", response_model=StatsResponse)
def stats_for_month(
    month: str = Query(..., description="YYYY-MM"),
    store: FinancialRecordRepository = Depends(get_store),
    request_id: str = Depends(get_request_id),
):
    """Aggregate the stored records of a month (generating missing ones first)"""
    year, month_number = parse_month(month)
    today = utc_today()
    try:
        ensure_month_records(store, year, month_number, request_id)
        rows = list_month_records(store, year, month_number, today=today)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailableError as e:
        logging.error(f"Store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Billing store unavailable")
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return to_stats_response(compute_stats([record for record, _ in rows], today))
