"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional


class LateFeeRequest(BaseModel):
    """Request body for POST /v1/late-fee"""

    amount_due: Decimal = Field(..., description="Amount owed; must be positive")
    due_date: date = Field(..., description="Contractual due date (YYYY-MM-DD)")
    payment_date: Optional[date] = Field(None, description="Payment date, defaults to today (UTC)")
    penalty_rate: Optional[Decimal] = Field(None, description="Flat penalty percent (multa)")
    daily_interest_rate: Optional[Decimal] = Field(None, description="Interest percent per day late (mora)")


class LateFeeResponse(BaseModel):
    """Response for POST /v1/late-fee"""

    original_value: float
    days_late: int
    penalty_amount: float
    interest_amount: float
    total_charges: float
    final_amount: float
    penalty_rate: float
    daily_interest_rate: float


class RecordSchema(BaseModel):
    """Financial record with its derived status"""

    id: str
    client_id: str
    plan_id: str
    client_plan_id: str
    original_value: float
    value: float
    due_date: date
    payment_date: Optional[date] = None
    status: str
    derived_status: str
    payment_method: str
    change_reason: Optional[str] = None
    observations: Optional[str] = None


class RecordListResponse(BaseModel):
    """Response for record listings"""

    records: List[RecordSchema]


class CascadePreviewItem(BaseModel):
    id: str
    due_date: date


class CascadePreviewResponse(BaseModel):
    """Response for GET /v1/records/{record_id}/due-date/preview"""

    count: int
    records: List[CascadePreviewItem]


class DueDateUpdateRequest(BaseModel):
    """Request body for POST /v1/records/{record_id}/due-date"""

    new_due_date: date
    apply_to_future: bool = False


class DueDateChangeSchema(BaseModel):
    id: str
    old_due_date: date
    new_due_date: date


class DueDateUpdateResponse(BaseModel):
    """Response for POST /v1/records/{record_id}/due-date"""

    updated_count: int
    candidate_count: int
    affected_records: List[DueDateChangeSchema]


class EnsureMonthResponse(BaseModel):
    """Response for POST /v1/months/{year}/{month}/records"""

    year: int
    month: int
    created: int


class SettleRequest(BaseModel):
    payment_date: Optional[date] = None


class ValueAdjustmentRequest(BaseModel):
    """Request body for PATCH /v1/records/{record_id}/value"""

    value: Decimal
    reason: str = Field(..., min_length=1)


class StatsRecordSchema(BaseModel):
    """Minimal record shape needed to aggregate stats"""

    status: str
    due_date: date
    value: Decimal


class StatsRequest(BaseModel):
    """Request body for POST /v1/stats"""

    records: List[StatsRecordSchema]
    today: Optional[date] = None


class StatsResponse(BaseModel):
    total: int
    settled: int
    pending: int
    overdue: int
    revenue: float
    outstanding: float
