"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from billing_engine.infrastructure.database.session import get_db
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store(db: Session = Depends(get_db)) -> FinancialRecordRepository:
    """Provide the financial record store bound to the request session"""
    return FinancialRecordRepository(db)


def parse_record_id(record_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(record_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid record ID format")


def parse_month(month: str) -> tuple[int, int]:
    """Parse a YYYY-MM filter"""
    try:
        year_text, month_text = month.split("-")
        year, month_number = int(year_text), int(month_text)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid month format, expected YYYY-MM")
    return year, month_number
