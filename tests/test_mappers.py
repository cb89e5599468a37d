"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from cashify.database.models import (
    Account as ORMAccount,
    Entry as ORMEntry,
)
from cashify.database.mappers import account_to_domain, entry_to_domain, to_money
from cashify.domain.entities import Account, AccountKind, Entry, EntryKind, EntryStatus, PaymentMode


def test_to_money_quantizes_to_cents():
    assert to_money(Decimal("10")) == Decimal("10.00")
    assert str(to_money("3.5")) == "3.50"
    assert to_money(None) == Decimal("0.00")


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        now = datetime.now(UTC)
        orm_account = ORMAccount(
            id=1,
            business_id=2,
            name="Till",
            kind="cash",
            currency="USD",
            initial_balance=Decimal("100"),
            current_balance=Decimal("75.5"),
            is_active=True,
            created_by="alice",
            created_at=now,
            updated_at=now,
        )
        account = account_to_domain(orm_account)

        assert isinstance(account, Account)
        assert account.kind is AccountKind.CASH
        assert account.initial_balance == Decimal("100.00")
        assert str(account.current_balance) == "75.50"
        assert account.business_id == 2


class TestEntryMapper:
    """Tests for Entry mapper."""

    def test_entry_to_domain(self):
        now = datetime.now(UTC)
        orm_entry = ORMEntry(
            id=7,
            business_id=1,
            account_id=3,
            kind="transfer-out",
            amount=Decimal("200.00"),
            date=date(2024, 2, 1),
            status="cleared",
            sequence=12,
            note="To bank",
            payment_mode="transfer",
            linked_entry_id=8,
            transfer_group_id="abc",
            attachments=["receipt-1"],
            created_at=now,
            updated_at=now,
        )
        entry = entry_to_domain(orm_entry)

        assert isinstance(entry, Entry)
        assert entry.kind is EntryKind.TRANSFER_OUT
        assert entry.status is EntryStatus.CLEARED
        assert entry.payment_mode is PaymentMode.TRANSFER
        assert entry.attachments == ("receipt-1",)
        assert entry.linked_entry_id == 8

    def test_missing_attachments_become_empty_tuple(self):
        now = datetime.now(UTC)
        orm_entry = ORMEntry(
            id=1,
            business_id=1,
            account_id=1,
            kind="income",
            amount=Decimal("1.00"),
            date=date(2024, 2, 1),
            status="pending",
            sequence=1,
            payment_mode="cash",
            attachments=None,
            created_at=now,
            updated_at=now,
        )
        assert entry_to_domain(orm_entry).attachments == ()
