"""Unit tests for due-date updates and cascades"""

import uuid
import pytest
from datetime import date
from billing_engine.domain.due_dates import (
    cascaded_due_date,
    preview_future_records,
    update_due_date,
)
from billing_engine.domain.exceptions import ImmutableRecordError, RecordNotFoundError, StoreUnavailableError
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository


def test_cascaded_due_date_keeps_month():
    assert cascaded_due_date(date(2025, 2, 5), 31) == date(2025, 2, 28)
    assert cascaded_due_date(date(2024, 2, 5), 31) == date(2024, 2, 29)
    assert cascaded_due_date(date(2025, 4, 5), 31) == date(2025, 4, 30)
    assert cascaded_due_date(date(2025, 5, 20), 3) == date(2025, 5, 3)


def test_update_due_date_single_record(store, make_link, make_record):
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    future = make_record(link, date(2025, 2, 5))

    result = update_due_date(store, target.id, date(2025, 1, 20), apply_to_future=False)

    assert result.updated_count == 1
    assert result.candidate_count == 0
    assert result.affected_records[0].old_due_date == date(2025, 1, 5)
    assert result.affected_records[0].new_due_date == date(2025, 1, 20)
    assert store.get_record(target.id).due_date == date(2025, 1, 20)
    assert store.get_record(future.id).due_date == date(2025, 2, 5)


def test_update_due_date_cascade_clamps_to_month_end(store, make_link, make_record):
    """Test day 5 → 31 moves Feb 5 to Feb 28 and Apr 5 to Apr 30"""
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    feb = make_record(link, date(2025, 2, 5))
    mar = make_record(link, date(2025, 3, 5))
    apr = make_record(link, date(2025, 4, 5))

    result = update_due_date(store, target.id, date(2025, 1, 31), apply_to_future=True)

    assert result.updated_count == 4
    assert result.candidate_count == 3
    assert result.skipped_count == 0
    assert store.get_record(target.id).due_date == date(2025, 1, 31)
    assert store.get_record(feb.id).due_date == date(2025, 2, 28)
    assert store.get_record(mar.id).due_date == date(2025, 3, 31)
    assert store.get_record(apr.id).due_date == date(2025, 4, 30)

    # Cascade order follows due date ascending
    assert [c.record_id for c in result.affected_records] == [target.id, feb.id, mar.id, apr.id]


def test_cascade_leaves_earlier_settled_and_other_links_alone(store, make_link, make_record):
    link = make_link()
    other_link = make_link()
    earlier = make_record(link, date(2024, 12, 5))
    same_day = make_record(link, date(2025, 1, 5))
    target = make_record(link, date(2025, 1, 5))
    settled_future = make_record(link, date(2025, 2, 5), status="settled", payment_date=date(2025, 1, 30))
    pending_future = make_record(link, date(2025, 3, 5))
    foreign = make_record(other_link, date(2025, 3, 5))

    result = update_due_date(store, target.id, date(2025, 1, 12), apply_to_future=True)

    assert result.candidate_count == 1
    assert store.get_record(pending_future.id).due_date == date(2025, 3, 12)
    assert store.get_record(earlier.id).due_date == date(2024, 12, 5)
    assert store.get_record(same_day.id).due_date == date(2025, 1, 5)
    assert store.get_record(settled_future.id).due_date == date(2025, 2, 5)
    assert store.get_record(foreign.id).due_date == date(2025, 3, 5)


def test_backward_edit_cascades_only_later_records(store, make_link, make_record):
    """Test moving the day earlier still selects records by the old due date"""
    link = make_link()
    target = make_record(link, date(2025, 1, 20))
    feb = make_record(link, date(2025, 2, 20))

    update_due_date(store, target.id, date(2025, 1, 3), apply_to_future=True)

    assert store.get_record(feb.id).due_date == date(2025, 2, 3)


def test_update_due_date_settled_target_is_immutable(store, make_link, make_record):
    link = make_link()
    target = make_record(link, date(2025, 1, 5), status="settled", payment_date=date(2025, 1, 4))
    future = make_record(link, date(2025, 2, 5))

    with pytest.raises(ImmutableRecordError):
        update_due_date(store, target.id, date(2025, 1, 31), apply_to_future=True)

    assert store.get_record(target.id).due_date == date(2025, 1, 5)
    assert store.get_record(future.id).due_date == date(2025, 2, 5)


def test_update_due_date_missing_record(store):
    with pytest.raises(RecordNotFoundError):
        update_due_date(store, uuid.uuid4(), date(2025, 1, 31))


class SettlesBetweenReadAndWrite(FinancialRecordRepository):
    """Store where the target gets settled right after it is read"""

    def __init__(self, db, racing_id):
        super().__init__(db)
        self.racing_id = racing_id
        self.raced = False

    def get_record(self, record_id):
        record = super().get_record(record_id)
        if record_id == self.racing_id and not self.raced:
            self.raced = True
            super().update_record(record_id, {"status": "settled", "payment_date": date(2025, 1, 4)})
        return record


def test_update_due_date_concurrent_settlement_is_rejected(db, make_link, make_record):
    """Test the conditional write refuses a record settled after the read"""
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    future = make_record(link, date(2025, 2, 5))
    racing_store = SettlesBetweenReadAndWrite(db, target.id)

    with pytest.raises(ImmutableRecordError):
        update_due_date(racing_store, target.id, date(2025, 1, 31), apply_to_future=True)

    record = racing_store.get_record(target.id)
    assert record.status == "settled"
    assert record.due_date == date(2025, 1, 5)
    assert racing_store.get_record(future.id).due_date == date(2025, 2, 5)


class FailsForRecord(FinancialRecordRepository):
    """Store whose update of one record always errors"""

    def __init__(self, db, failing_id):
        super().__init__(db)
        self.failing_id = failing_id

    def update_record(self, record_id, patch, expected_status=None):
        if record_id == self.failing_id:
            raise StoreUnavailableError("connection reset")
        return super().update_record(record_id, patch, expected_status)


def test_cascade_partial_failure_is_skipped_and_reported(db, make_link, make_record):
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    feb = make_record(link, date(2025, 2, 5))
    mar = make_record(link, date(2025, 3, 5))
    flaky_store = FailsForRecord(db, feb.id)

    result = update_due_date(flaky_store, target.id, date(2025, 1, 10), apply_to_future=True)

    assert result.candidate_count == 2
    assert result.updated_count == 2  # target + March
    assert result.skipped_count == 1
    assert flaky_store.get_record(feb.id).due_date == date(2025, 2, 5)
    assert flaky_store.get_record(mar.id).due_date == date(2025, 3, 10)


def test_preview_lists_candidates_without_mutating(store, make_link, make_record):
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    feb = make_record(link, date(2025, 2, 5))
    mar = make_record(link, date(2025, 3, 5))
    make_record(link, date(2025, 4, 5), status="settled", payment_date=date(2025, 4, 1))

    preview = preview_future_records(store, target.id, link.id, date(2025, 1, 5))

    assert preview.count == 2
    assert [r.id for r in preview.records] == [feb.id, mar.id]
    assert store.get_record(feb.id).due_date == date(2025, 2, 5)
    assert store.get_record(target.id).due_date == date(2025, 1, 5)


def test_cascade_rerun_converges(store, make_link, make_record):
    """Test re-committing the same edit produces the same dates"""
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    feb = make_record(link, date(2025, 2, 5))

    update_due_date(store, target.id, date(2025, 1, 31), apply_to_future=True)
    update_due_date(store, target.id, date(2025, 1, 31), apply_to_future=True)

    assert store.get_record(target.id).due_date == date(2025, 1, 31)
    assert store.get_record(feb.id).due_date == date(2025, 2, 28)


def test_cascade_skip_warning_carries_request_id(db, make_link, make_record, caplog):
    link = make_link()
    target = make_record(link, date(2025, 1, 5))
    feb = make_record(link, date(2025, 2, 5))
    flaky_store = FailsForRecord(db, feb.id)

    update_due_date(flaky_store, target.id, date(2025, 1, 10), apply_to_future=True, request_id="req-42")

    skips = [r for r in caplog.records if r.levelname == "WARNING"]
    assert len(skips) == 1
    assert skips[0].request_id == "req-42"
    assert skips[0].record_id == str(feb.id)
