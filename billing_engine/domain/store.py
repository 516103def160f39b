"""Store adapter contract consumed by the billing domain"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from billing_engine.domain.models import ClientPlanLink, FinancialRecord


class FinancialStore(Protocol):
    """
    Persisted ledger of financial records and subscription links.

    Every call is a potential blocking point. Mutations commit individually;
    transport failures surface as StoreUnavailableError.
    """

    def get_record(self, record_id: uuid.UUID) -> Optional[FinancialRecord]:
        ...

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
        """Records matching every given filter, ordered by due_date ascending"""
        ...

    def update_record(
        self,
        record_id: uuid.UUID,
        patch: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        """Apply patch only if the row still has expected_status. Returns False when nothing matched."""
        ...

    def list_active_links(self) -> List[ClientPlanLink]:
        ...

    def record_exists_for_month(self, client_plan_id: uuid.UUID, year: int, month: int) -> bool:
        ...

    def insert_record(self, record: FinancialRecord) -> FinancialRecord:
        ...
