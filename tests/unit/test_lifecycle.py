"""Unit tests for settle / reopen / value adjustment"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from billing_engine.domain.lifecycle import (
    adjust_record_value,
    list_month_records,
    list_pending_records,
    reopen_record,
    settle_record,
)
from billing_engine.domain.monthly_records import ensure_records_for_month
from billing_engine.domain.exceptions import ImmutableRecordError, InvalidInputError, RecordNotFoundError
from billing_engine.infrastructure.database.repositories import FinancialRecordRepository


def test_settle_sets_payment_date(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10))

    record = settle_record(store, row.id, payment_date=date(2025, 1, 12))

    assert record.status == "settled"
    assert record.payment_date == date(2025, 1, 12)


def test_settle_twice_is_rejected(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10), status="settled", payment_date=date(2025, 1, 9))

    with pytest.raises(ImmutableRecordError):
        settle_record(store, row.id)


def test_reopen_clears_payment_date(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10), status="settled", payment_date=date(2025, 1, 9))

    record = reopen_record(store, row.id)

    assert record.status == "pending"
    assert record.payment_date is None


def test_reopen_pending_record_is_rejected(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10))

    with pytest.raises(InvalidInputError):
        reopen_record(store, row.id)


def test_adjust_value_keeps_original_value(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10), value="150.00")

    record = adjust_record_value(store, row.id, "120.00", "Loyalty discount")

    assert record.value == Decimal("120.00")
    assert record.original_value == Decimal("150.00")
    assert record.change_reason == "Loyalty discount"
    assert record.observations == "Value changed from 150.00 to 120.00. Reason: Loyalty discount"


def test_adjust_value_on_settled_record_is_rejected(store, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10), status="settled", payment_date=date(2025, 1, 10))

    with pytest.raises(ImmutableRecordError):
        adjust_record_value(store, row.id, "99.00", "Late discount")

    assert store.get_record(row.id).value == Decimal("150.00")


@pytest.mark.parametrize("value,reason", [("0", "reason"), ("-5", "reason"), ("10", "   "), ("abc", "reason")])
def test_adjust_value_validates_input(store, make_link, make_record, value, reason):
    link = make_link()
    row = make_record(link, date(2025, 1, 10))

    with pytest.raises(InvalidInputError):
        adjust_record_value(store, row.id, value, reason)


def test_missing_record_raises_not_found(store):
    with pytest.raises(RecordNotFoundError):
        settle_record(store, uuid.uuid4())
    with pytest.raises(RecordNotFoundError):
        reopen_record(store, uuid.uuid4())


def test_list_pending_records_by_client(store, make_link, make_record):
    link = make_link()
    other = make_link()
    later = make_record(link, date(2025, 3, 10))
    earlier = make_record(link, date(2025, 2, 10))
    make_record(link, date(2025, 1, 10), status="settled", payment_date=date(2025, 1, 10))
    make_record(other, date(2025, 2, 1))

    records = list_pending_records(store, client_id=link.client_id)

    assert [r.id for r in records] == [earlier.id, later.id]


def test_list_month_records_derives_status(store, make_link, make_record):
    link = make_link(anchor=date(2025, 1, 10))
    settled_link = make_link(anchor=date(2025, 1, 5))
    make_record(settled_link, date(2025, 3, 5), status="settled", payment_date=date(2025, 3, 5))
    ensure_records_for_month(store, 2025, 3)

    rows = list_month_records(store, 2025, 3, today=date(2025, 3, 20))

    statuses = {record.client_plan_id: status for record, status in rows}
    assert statuses == {link.id: "overdue", settled_link.id: "settled"}

    overdue_only = list_month_records(store, 2025, 3, status="overdue", today=date(2025, 3, 20))
    assert [record.client_plan_id for record, _ in overdue_only] == [link.id]


def test_list_month_records_rejects_unknown_status(store):
    with pytest.raises(InvalidInputError):
        list_month_records(store, 2025, 3, status="atrasado")


def test_list_month_records_does_not_generate(store, make_link):
    make_link(anchor=date(2025, 1, 10))

    assert list_month_records(store, 2025, 4) == []


@pytest.mark.parametrize("month", [0, 13])
def test_list_month_records_rejects_invalid_month(store, month):
    with pytest.raises(InvalidInputError):
        list_month_records(store, 2025, month)


class SettledAndReopenedBeforeWrite(FinancialRecordRepository):
    """Store where the conditional write misses once but the record ends up pending again"""

    def __init__(self, db):
        super().__init__(db)
        self.missed = False

    def update_record(self, record_id, patch, expected_status=None):
        if not self.missed:
            self.missed = True
            return False
        return super().update_record(record_id, patch, expected_status)


def test_lost_race_on_existing_pending_record_is_a_conflict(db, make_link, make_record):
    link = make_link()
    row = make_record(link, date(2025, 1, 10))
    racing_store = SettledAndReopenedBeforeWrite(db)

    with pytest.raises(ImmutableRecordError, match="changed concurrently"):
        settle_record(racing_store, row.id)

    assert racing_store.get_record(row.id).status == "pending"
