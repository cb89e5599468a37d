"""Tests for domain entities."""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, UTC
from decimal import Decimal

from cashify.domain.entities import (
    BalanceCheck,
    EntryKind,
    EntryStatus,
)


class TestEntryKind:
    """Tests for EntryKind."""

    @pytest.mark.parametrize(
        "kind,is_credit,is_transfer",
        [
            (EntryKind.INCOME, True, False),
            (EntryKind.EXPENSE, False, False),
            (EntryKind.TRANSFER_IN, True, True),
            (EntryKind.TRANSFER_OUT, False, True),
        ],
    )
    def test_sign_and_transfer_flags(self, kind, is_credit, is_transfer):
        assert kind.is_credit is is_credit
        assert kind.is_transfer is is_transfer

    def test_values_match_wire_format(self):
        assert EntryKind("transfer-out") is EntryKind.TRANSFER_OUT
        assert EntryKind.TRANSFER_IN.value == "transfer-in"


class TestEntry:
    """Tests for Entry entity."""

    def test_entry_immutability(self, make_entry):
        entry = make_entry()
        with pytest.raises(FrozenInstanceError):
            entry.amount = Decimal("20.00")

    def test_is_cancelled(self, make_entry):
        assert make_entry(status=EntryStatus.CANCELLED).is_cancelled
        assert not make_entry(status=EntryStatus.RECONCILED).is_cancelled

    def test_entry_equality(self, make_entry):
        created_at = datetime.now(UTC)
        first = make_entry(created_at=created_at, updated_at=created_at)
        second = make_entry(created_at=created_at, updated_at=created_at)
        assert first == second
        assert first != make_entry(id=2, created_at=created_at, updated_at=created_at)


class TestBalanceCheck:
    """Tests for BalanceCheck."""

    def test_consistent(self):
        check = BalanceCheck(
            account_id=1,
            cached_balance=Decimal("10.00"),
            replayed_balance=Decimal("10.00"),
            entry_count=3,
        )
        assert check.is_consistent
        assert check.drift == Decimal("0")

    def test_drift(self):
        check = BalanceCheck(
            account_id=1,
            cached_balance=Decimal("12.50"),
            replayed_balance=Decimal("10.00"),
            entry_count=3,
        )
        assert not check.is_consistent
        assert check.drift == Decimal("2.50")
