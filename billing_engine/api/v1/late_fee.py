"""POST /v1/late-fee - Late payment charge calculator"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from billing_engine.api.v1.schemas import LateFeeRequest, LateFeeResponse
from billing_engine.api.dependencies import get_request_id
from billing_engine.config import settings
from billing_engine.domain.late_fees import calculate_late_fee
from billing_engine.domain.exceptions import InvalidInputError
from billing_engine.infrastructure.observability.metrics import record_late_fee_quote
from billing_engine.infrastructure.observability.logging import log_late_fee_quote

router = APIRouter()


@router.post("/late-fee", response_model=LateFeeResponse)
def quote_late_fee(request_body: LateFeeRequest, request_id: str = Depends(get_request_id)):
    """
    Quote penalty (multa) and daily interest (mora) for a payment.

    Rates omitted from the request fall back to the configured policy
    (2% penalty, 1% per day by default). Nothing is persisted.
    """
    penalty_rate = request_body.penalty_rate
    if penalty_rate is None:
        penalty_rate = settings.late_fee_penalty_rate
    daily_interest_rate = request_body.daily_interest_rate
    if daily_interest_rate is None:
        daily_interest_rate = settings.late_fee_daily_interest_rate

    try:
        quote = calculate_late_fee(
            amount_due=request_body.amount_due,
            due_date=request_body.due_date,
            payment_date=request_body.payment_date,
            penalty_rate=penalty_rate,
            daily_interest_rate=daily_interest_rate,
        )
    except InvalidInputError as e:
        logging.warning(f"Invalid late fee input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_late_fee_quote(quote.days_late)
    log_late_fee_quote(request_id, quote)

    return LateFeeResponse(
        original_value=float(quote.original_value),
        days_late=quote.days_late,
        penalty_amount=float(quote.penalty_amount),
        interest_amount=float(quote.interest_amount),
        total_charges=float(quote.total_charges),
        final_amount=float(quote.final_amount),
        penalty_rate=float(quote.penalty_rate),
        daily_interest_rate=float(quote.daily_interest_rate),
    )
