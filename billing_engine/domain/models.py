"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

STATUS_PENDING = "pending"
STATUS_SETTLED = "settled"
STATUS_OVERDUE = "overdue"  # derived only, never persisted


@dataclass
class FinancialRecord:
    """One billing obligation tied to a client's subscription"""

    client_id: uuid.UUID
    plan_id: uuid.UUID
    client_plan_id: uuid.UUID
    original_value: Decimal
    value: Decimal
    due_date: date
    status: str = STATUS_PENDING
    payment_date: Optional[date] = None
    payment_method: str = ""
    change_reason: Optional[str] = None
    observations: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def is_settled(self) -> bool:
        return self.status == STATUS_SETTLED


@dataclass
class ClientPlanLink:
    """Active subscription anchoring a recurring billing cadence"""

    id: uuid.UUID
    client_id: uuid.UUID
    plan_id: uuid.UUID
    value: Decimal
    payment_date: date  # cadence anchor, first cycle
    payment_method: str = ""
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class LateFeeQuote:
    """Penalty (multa) + daily interest (mora) for a late payment. Never persisted."""

    original_value: Decimal
    days_late: int
    penalty_amount: Decimal
    interest_amount: Decimal
    total_charges: Decimal
    final_amount: Decimal
    penalty_rate: Decimal
    daily_interest_rate: Decimal


@dataclass
class DueDateChange:
    """Single due-date rewrite applied by the propagator"""

    record_id: uuid.UUID
    old_due_date: date
    new_due_date: date


@dataclass
class CascadeResult:
    """Outcome of a due-date update, including the cascaded records"""

    affected_records: List[DueDateChange]
    candidate_count: int = 0

    @property
    def updated_count(self) -> int:
        return len(self.affected_records)

    @property
    def skipped_count(self) -> int:
        # Target record is always the first affected entry
        return max(0, self.candidate_count - (self.updated_count - 1))


@dataclass
class CascadePreview:
    """Dry-run enumeration of records a cascade would touch"""

    records: List[FinancialRecord]

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass
class FinancialStats:
    """Aggregate view over a record set with overdue reclassification applied"""

    total: int
    settled: int
    pending: int
    overdue: int
    revenue: Decimal
    outstanding: Decimal
