"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from billing_engine.domain.models import CascadeResult, LateFeeQuote


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = "billing-engine", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "billing-engine") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_due_date_update(
    request_id: str,
    record_id: str,
    result: CascadeResult,
    apply_to_future: bool,
    duration_ms: float,
) -> None:
    """Audit entry for a committed due-date change"""
    target = result.affected_records[0]
    logging.info(
        "Due date updated",
        extra={
            "request_id": request_id,
            "step": "due_date_update",
            "record_id": record_id,
            "old_due_date": target.old_due_date.isoformat(),
            "new_due_date": target.new_due_date.isoformat(),
            "apply_to_future": apply_to_future,
            "records_updated": result.updated_count,
            "cascade_candidates": result.candidate_count,
            "cascade_skipped": result.skipped_count,
            "duration_ms": duration_ms,
        },
    )


def log_late_fee_quote(request_id: str, quote: LateFeeQuote) -> None:
    logging.info(
        "Late fee calculated",
        extra={
            "request_id": request_id,
            "step": "late_fee_quote",
            "days_late": quote.days_late,
            "total_charges": str(quote.total_charges),
            "final_amount": str(quote.final_amount),
        },
    )


def log_month_generation(request_id: str, year: int, month: int, created: int) -> None:
    logging.info(
        "Monthly records ensured",
        extra={
            "request_id": request_id,
            "step": "ensure_month",
            "year": year,
            "month": month,
            "records_created": created,
        },
    )


def log_record_transition(request_id: str, record_id: str, transition: str) -> None:
    logging.info(
        "Financial record transition",
        extra={
            "request_id": request_id,
            "step": transition,
            "record_id": record_id,
        },
    )
