"""Derived status and aggregate totals over financial records"""

from datetime import date
from decimal import Decimal
from typing import Iterable
from billing_engine.domain.models import (
    FinancialStats,
    STATUS_OVERDUE,
    STATUS_PENDING,
    STATUS_SETTLED,
)


def derived_status(record, today: date) -> str:
    """Stored status, with pending records past their due date reported as overdue"""
    if record.status == STATUS_PENDING and record.due_date < today:
        return STATUS_OVERDUE
    return record.status


def compute_stats(records: Iterable, today: date) -> FinancialStats:
    """
    Aggregate counts and totals in a single pass.

    Each record lands in exactly one bucket (settled, pending or overdue),
    so settled + pending + overdue == total.

    - revenue: sum of value over settled records
    - outstanding: sum of value over everything not settled (pending + overdue)
    """
    counts = {STATUS_SETTLED: 0, STATUS_PENDING: 0, STATUS_OVERDUE: 0}
    revenue = Decimal(0)
    outstanding = Decimal(0)
    total = 0

    for record in records:
        total += 1
        status = derived_status(record, today)
        value = Decimal(str(record.value))

        if status == STATUS_SETTLED:
            counts[STATUS_SETTLED] += 1
            revenue += value
        else:
            # Unknown stored statuses count as pending so buckets always add up
            counts[STATUS_OVERDUE if status == STATUS_OVERDUE else STATUS_PENDING] += 1
            outstanding += value

    return FinancialStats(
        total=total,
        settled=counts[STATUS_SETTLED],
        pending=counts[STATUS_PENDING],
        overdue=counts[STATUS_OVERDUE],
        revenue=revenue,
        outstanding=outstanding,
    )
