"""Data access layer for the billing ledger"""

import uuid
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from billing_engine.infrastructure.database.models import ClientPlan, FinancialRecordRow
from billing_engine.infrastructure.observability.metrics import store_failures_counter
from billing_engine.domain.models import ClientPlanLink, FinancialRecord
from billing_engine.domain.exceptions import InvalidInputError, StoreUnavailableError
from billing_engine.utils.date_utils import month_bounds

# Columns a patch may touch; identity, links and original_value are fixed at creation
MUTABLE_FIELDS = frozenset(
    {"due_date", "value", "status", "payment_date", "payment_method", "change_reason", "observations"}
)


def to_financial_record(row: FinancialRecordRow) -> FinancialRecord:
    return FinancialRecord(
        id=row.id,
        client_id=row.client_id,
        plan_id=row.plan_id,
        client_plan_id=row.client_plan_id,
        original_value=row.original_value,
        value=row.value,
        due_date=row.due_date,
        status=row.status,
        payment_date=row.payment_date,
        payment_method=row.payment_method,
        change_reason=row.change_reason,
        observations=row.observations,
    )


def to_client_plan_link(row: ClientPlan) -> ClientPlanLink:
    return ClientPlanLink(
        id=row.id,
        client_id=row.client_id,
        plan_id=row.plan_id,
        value=row.value,
        payment_date=row.payment_date,
        payment_method=row.payment_method,
        is_active=row.is_active,
        start_date=row.start_date,
        end_date=row.end_date,
    )


class FinancialRecordRepository:
    """
    Repository for financial records and client-plan links.

    Every mutation commits its own transaction; database errors roll the
    session back and surface as StoreUnavailableError.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            store_failures_counter.labels(operation=operation).inc()
            raise StoreUnavailableError(f"Store error during {operation}: {e.__class__.__name__}") from e

    def get_record(self, record_id: uuid.UUID) -> Optional[FinancialRecord]:
        """Fetch a single record by id"""
        with self._guard("get_record"):
            row = self.db.get(FinancialRecordRow, record_id)
            return to_financial_record(row) if row else None

    def list_records(
        self,
        client_plan_id: Optional[uuid.UUID] = None,
        exclude_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        due_date_after: Optional[date] = None,
        client_id: Optional[uuid.UUID] = None,
        due_date_from: Optional[date] = None,
        due_date_until: Optional[date] = None,
    ) -> List[FinancialRecord]:
        """Filter records, ordered by due date ascending"""
        query = self.db.query(FinancialRecordRow)
        if client_plan_id is not None:
            query = query.filter(FinancialRecordRow.client_plan_id == client_plan_id)
        if exclude_id is not None:
            query = query.filter(FinancialRecordRow.id != exclude_id)
        if status is not None:
            query = query.filter(FinancialRecordRow.status == status)
        if due_date_after is not None:
            query = query.filter(FinancialRecordRow.due_date > due_date_after)
        if client_id is not None:
            query = query.filter(FinancialRecordRow.client_id == client_id)
        if due_date_from is not None:
            query = query.filter(FinancialRecordRow.due_date >= due_date_from)
        if due_date_until is not None:
            query = query.filter(FinancialRecordRow.due_date <= due_date_until)

        with self._guard("list_records"):
            rows = query.order_by(FinancialRecordRow.due_date.asc(), FinancialRecordRow.id.asc()).all()
            return [to_financial_record(row) for row in rows]

    def update_record(
        self,
        record_id: uuid.UUID,
        patch: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        """
        Conditional single-row update.

        UPDATE financial_records SET ... WHERE id = :id [AND status = :expected_status]

        Returns:
            True if the row was updated, False if it is missing or its status changed
        """
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Fields cannot be updated: {sorted(unknown)}")

        query = self.db.query(FinancialRecordRow).filter(FinancialRecordRow.id == record_id)
        if expected_status is not None:
            query = query.filter(FinancialRecordRow.status == expected_status)

        with self._guard("update_record"):
            updated = query.update(patch, synchronize_session=False)
            self.db.commit()
            return updated == 1

    def insert_record(self, record: FinancialRecord) -> FinancialRecord:
        """Persist a new record"""
        row = FinancialRecordRow(
            id=record.id,
            client_id=record.client_id,
            plan_id=record.plan_id,
            client_plan_id=record.client_plan_id,
            original_value=record.original_value,
            value=record.value,
            due_date=record.due_date,
            payment_date=record.payment_date,
            status=record.status,
            payment_method=record.payment_method,
            change_reason=record.change_reason,
            observations=record.observations,
        )
        with self._guard("insert_record"):
            self.db.add(row)
            self.db.commit()
            return to_financial_record(row)

    def list_active_links(self) -> List[ClientPlanLink]:
        """All subscriptions currently billing"""
        with self._guard("list_active_links"):
            rows = (
                self.db.query(ClientPlan)
                .filter(ClientPlan.is_active.is_(True))
                .order_by(ClientPlan.created_at.asc(), ClientPlan.id.asc())
                .all()
            )
            return [to_client_plan_link(row) for row in rows]

    def record_exists_for_month(self, client_plan_id: uuid.UUID, year: int, month: int) -> bool:
        """Whether the link already has a record due within year/month"""
        start, end = month_bounds(year, month)
        with self._guard("record_exists_for_month"):
            row = (
                self.db.query(FinancialRecordRow.id)
                .filter(
                    FinancialRecordRow.client_plan_id == client_plan_id,
                    FinancialRecordRow.due_date >= start,
                    FinancialRecordRow.due_date <= end,
                )
                .first()
            )
            return row is not None
