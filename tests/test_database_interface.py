"""Tests for the Database interface returning domain models."""

import pytest
from datetime import date
from decimal import Decimal

from cashify.domain import entities
from cashify.domain.entities import EntryKind, EntryStatus
from cashify.domain.errors import NotFoundError


@pytest.fixture
def business_id(temp_db):
    return temp_db.create_business(name="Shop", currency="USD")


@pytest.fixture
def account_id(temp_db, business_id):
    return temp_db.create_account(
        business_id, name="Till", kind="cash", currency="USD", initial_balance=Decimal("100.00")
    )


def append(db, business_id, account_id, when, kind=EntryKind.EXPENSE, amount="10.00"):
    return db.append_entry(business_id, account_id, kind, amount=Decimal(amount), date=when)


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db, business_id, account_id):
        account = temp_db.get_account(business_id, account_id)

        assert isinstance(account, entities.Account)
        assert account.name == "Till"
        assert account.initial_balance == Decimal("100.00")
        assert account.current_balance == Decimal("100.00")
        assert account.is_active

    def test_get_entry_returns_domain_model(self, temp_db, business_id, account_id):
        entry_id = temp_db.append_entry(
            business_id,
            account_id,
            EntryKind.INCOME,
            amount=Decimal("25.50"),
            date=date(2024, 1, 2),
            note="Sale",
            attachments=["blob://1"],
            created_by="alice",
        )
        entry = temp_db.get_entry(business_id, entry_id)

        assert isinstance(entry, entities.Entry)
        assert entry.kind is EntryKind.INCOME
        assert entry.amount == Decimal("25.50")
        assert entry.status is EntryStatus.CLEARED
        assert entry.attachments == ("blob://1",)
        assert entry.created_by == "alice"
        assert entry.created_at is not None


class TestSequence:
    """The sequence counter orders entries appended on the same date."""

    def test_sequence_is_monotonic(self, temp_db, business_id, account_id):
        ids = [append(temp_db, business_id, account_id, date(2024, 1, 1)) for _ in range(5)]
        sequences = [temp_db.get_entry(business_id, i).sequence for i in ids]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == 5

    def test_rolled_back_append_leaves_no_entry(self, temp_db, business_id, account_id):
        first = append(temp_db, business_id, account_id, date(2024, 1, 1))
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                append(temp_db, business_id, account_id, date(2024, 1, 1))
                raise RuntimeError("boom")
        second = append(temp_db, business_id, account_id, date(2024, 1, 1))

        assert temp_db.get_entry(business_id, second).sequence > temp_db.get_entry(business_id, first).sequence
        assert len(temp_db.list_entries_by_account(business_id, account_id)) == 2

    def test_list_by_account_orders_by_date_then_sequence(self, temp_db, business_id, account_id):
        late = append(temp_db, business_id, account_id, date(2024, 1, 3))
        early_a = append(temp_db, business_id, account_id, date(2024, 1, 1))
        early_b = append(temp_db, business_id, account_id, date(2024, 1, 1))

        entries = temp_db.list_entries_by_account(business_id, account_id)
        assert [e.id for e in entries] == [early_a, early_b, late]

    def test_list_by_account_date_range(self, temp_db, business_id, account_id):
        append(temp_db, business_id, account_id, date(2024, 1, 1))
        middle = append(temp_db, business_id, account_id, date(2024, 1, 5))
        append(temp_db, business_id, account_id, date(2024, 1, 9))

        entries = temp_db.list_entries_by_account(
            business_id, account_id, start_date=date(2024, 1, 2), end_date=date(2024, 1, 8)
        )
        assert [e.id for e in entries] == [middle]


class TestTenantIsolation:
    """Rows of one business are invisible to another."""

    def test_get_entry_from_other_business_is_none(self, temp_db, business_id, account_id):
        other = temp_db.create_business(name="Other", currency="USD")
        entry_id = append(temp_db, business_id, account_id, date(2024, 1, 1))

        assert temp_db.get_entry(other, entry_id) is None
        assert temp_db.get_account(other, account_id) is None

    def test_update_and_cancel_from_other_business_raise(self, temp_db, business_id, account_id):
        other = temp_db.create_business(name="Other", currency="USD")
        entry_id = append(temp_db, business_id, account_id, date(2024, 1, 1))

        with pytest.raises(NotFoundError):
            temp_db.update_entry(other, entry_id, note="hijack")
        with pytest.raises(NotFoundError):
            temp_db.cancel_entry(other, entry_id)
        assert temp_db.get_entry(business_id, entry_id).note is None

    def test_append_to_other_business_account_raises(self, temp_db, business_id, account_id):
        other = temp_db.create_business(name="Other", currency="USD")
        with pytest.raises(NotFoundError):
            append(temp_db, other, account_id, date(2024, 1, 1))


class TestEntryMutations:
    """Update, cancel and link."""

    def test_update_entry_patches_given_fields(self, temp_db, business_id, account_id):
        entry_id = append(temp_db, business_id, account_id, date(2024, 1, 1))
        updated = temp_db.update_entry(business_id, entry_id, amount=Decimal("12.00"), note="fixed")

        assert updated.amount == Decimal("12.00")
        assert updated.note == "fixed"
        assert updated.date == date(2024, 1, 1)

    def test_update_missing_entry_raises(self, temp_db, business_id):
        with pytest.raises(NotFoundError):
            temp_db.update_entry(business_id, 999, note="x")

    def test_cancel_is_idempotent(self, temp_db, business_id, account_id):
        entry_id = append(temp_db, business_id, account_id, date(2024, 1, 1))
        first = temp_db.cancel_entry(business_id, entry_id)
        second = temp_db.cancel_entry(business_id, entry_id)

        assert first.status is EntryStatus.CANCELLED
        assert second.status is EntryStatus.CANCELLED

    def test_link_entries_is_symmetric(self, temp_db, business_id, account_id):
        a = append(temp_db, business_id, account_id, date(2024, 1, 1))
        b = append(temp_db, business_id, account_id, date(2024, 1, 1))
        temp_db.link_entries(business_id, a, b)

        assert temp_db.get_entry(business_id, a).linked_entry_id == b
        assert temp_db.get_entry(business_id, b).linked_entry_id == a


class TestTransactions:
    """Unit-of-work behaviour."""

    def test_nested_transaction_joins_outer(self, temp_db, business_id, account_id):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                append(temp_db, business_id, account_id, date(2024, 1, 1))
                with temp_db.transaction():
                    temp_db.set_cached_balance(business_id, account_id, Decimal("1.00"))
                raise RuntimeError("abort")

        assert temp_db.list_entries_by_account(business_id, account_id) == []
        assert temp_db.get_account(business_id, account_id).current_balance == Decimal("100.00")

    def test_audit_rows_round_trip(self, temp_db, business_id):
        temp_db.record_audit_event(
            business_id, "entry", "5", "create", actor="bob", new_values={"amount": "1.00"}
        )
        events = temp_db.list_audit_events(business_id, entity_type="entry", entity_id="5")

        assert len(events) == 1
        assert events[0].actor == "bob"
        assert events[0].new_values == {"amount": "1.00"}
