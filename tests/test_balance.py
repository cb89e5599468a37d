"""Tests for the balance calculator."""

import pytest
from datetime import date
from decimal import Decimal

from cashify.domain.balance import entry_effect, replay
from cashify.domain.errors import ConsistencyViolationError, CurrencyMismatchError, NotFoundError
from cashify.domain.entities import EntryKind, EntryStatus


class TestEntryEffect:
    """The effect of an entry depends only on kind, amount and status."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (EntryKind.INCOME, Decimal("10.00")),
            (EntryKind.TRANSFER_IN, Decimal("10.00")),
            (EntryKind.EXPENSE, Decimal("-10.00")),
            (EntryKind.TRANSFER_OUT, Decimal("-10.00")),
        ],
    )
    def test_sign_follows_kind(self, make_entry, kind, expected):
        assert entry_effect(make_entry(kind=kind)) == expected

    def test_cancelled_contributes_nothing(self, make_entry):
        entry = make_entry(kind=EntryKind.INCOME, status=EntryStatus.CANCELLED)
        assert entry_effect(entry) == Decimal("0")

    def test_replay_folds_from_initial_balance(self, make_entry):
        entries = [
            make_entry(kind=EntryKind.INCOME, amount=Decimal("5.25")),
            make_entry(kind=EntryKind.EXPENSE, amount=Decimal("1.25")),
            make_entry(kind=EntryKind.EXPENSE, amount=Decimal("99.00"), status=EntryStatus.CANCELLED),
        ]
        assert replay(Decimal("10.00"), entries) == Decimal("14.00")


class TestCurrentBalance:
    """Tests for current_balance and the cached snapshot."""

    def test_replay_matches_cache(self, entry_service, balance_calculator, sample_account, day):
        biz, acc = sample_account.business_id, sample_account.id
        entry_service.create_entry(biz, acc, "income", "250.00", day)
        entry_service.create_entry(biz, acc, "expense", "99.99", day)
        cancelled = entry_service.create_entry(biz, acc, "expense", "500.00", day)
        entry_service.cancel_entry(biz, cancelled.id)

        assert balance_calculator.current_balance(biz, acc) == Decimal("1150.01")
        assert balance_calculator.cached_balance(biz, acc) == Decimal("1150.01")
        assert balance_calculator.verify_balance(biz, acc).is_consistent

    def test_exact_decimal_arithmetic(self, entry_service, balance_calculator, sample_account, day):
        biz, acc = sample_account.business_id, sample_account.id
        for _ in range(10):
            entry_service.create_entry(biz, acc, "income", "0.10", day)

        assert balance_calculator.current_balance(biz, acc) == Decimal("1001.00")

    def test_currency_mismatch(self, balance_calculator, sample_account):
        with pytest.raises(CurrencyMismatchError):
            balance_calculator.current_balance(
                sample_account.business_id, sample_account.id, currency="EUR"
            )

    def test_matching_currency_is_case_insensitive(self, balance_calculator, sample_account):
        balance = balance_calculator.current_balance(
            sample_account.business_id, sample_account.id, currency="usd"
        )
        assert balance == Decimal("1000.00")

    def test_missing_account(self, balance_calculator, sample_business):
        with pytest.raises(NotFoundError):
            balance_calculator.current_balance(sample_business.id, 999)


class TestRunningBalances:
    """Tests for running_balances."""

    def test_order_and_balances(self, entry_service, balance_calculator, sample_account):
        biz, acc = sample_account.business_id, sample_account.id
        third = entry_service.create_entry(biz, acc, "expense", "30.00", date(2024, 1, 3))
        first = entry_service.create_entry(biz, acc, "income", "10.00", date(2024, 1, 1))
        second = entry_service.create_entry(biz, acc, "expense", "5.00", date(2024, 1, 1))

        rows = balance_calculator.running_balances(biz, acc)

        assert [r.entry.id for r in rows] == [first.id, second.id, third.id]
        assert [r.balance_after for r in rows] == [
            Decimal("1010.00"),
            Decimal("1005.00"),
            Decimal("975.00"),
        ]

    def test_stable_across_calls(self, entry_service, balance_calculator, sample_account, day):
        biz, acc = sample_account.business_id, sample_account.id
        for amount in ("1.00", "2.00", "3.00"):
            entry_service.create_entry(biz, acc, "expense", amount, day)

        assert balance_calculator.running_balances(biz, acc) == balance_calculator.running_balances(
            biz, acc
        )

    def test_window_starts_from_prior_history(self, entry_service, balance_calculator, sample_account):
        biz, acc = sample_account.business_id, sample_account.id
        entry_service.create_entry(biz, acc, "expense", "100.00", date(2024, 1, 1))
        inside = entry_service.create_entry(biz, acc, "expense", "50.00", date(2024, 2, 1))
        entry_service.create_entry(biz, acc, "expense", "25.00", date(2024, 3, 1))

        rows = balance_calculator.running_balances(
            biz, acc, start_date=date(2024, 1, 15), end_date=date(2024, 2, 15)
        )

        assert [r.entry.id for r in rows] == [inside.id]
        assert rows[0].balance_after == Decimal("850.00")

    def test_cancelled_entries_hidden_unless_requested(
        self, entry_service, balance_calculator, sample_account, day
    ):
        biz, acc = sample_account.business_id, sample_account.id
        kept = entry_service.create_entry(biz, acc, "expense", "10.00", day)
        dropped = entry_service.create_entry(biz, acc, "expense", "20.00", day)
        entry_service.cancel_entry(biz, dropped.id)

        visible = balance_calculator.running_balances(biz, acc)
        everything = balance_calculator.running_balances(biz, acc, include_cancelled=True)

        assert [r.entry.id for r in visible] == [kept.id]
        assert [r.entry.id for r in everything] == [kept.id, dropped.id]
        assert everything[1].balance_after == Decimal("990.00")


class TestVerifyAndRebuild:
    """Drift detection and explicit repair."""

    def test_verify_raises_on_drift_and_leaves_cache(self, temp_db, balance_calculator, sample_account):
        biz, acc = sample_account.business_id, sample_account.id
        temp_db.set_cached_balance(biz, acc, Decimal("1234.00"))

        with pytest.raises(ConsistencyViolationError) as excinfo:
            balance_calculator.verify_balance(biz, acc)

        assert excinfo.value.fatal
        assert excinfo.value.context["account_id"] == acc
        assert balance_calculator.cached_balance(biz, acc) == Decimal("1234.00")

    def test_rebuild_repairs_and_audits(self, temp_db, balance_calculator, sample_account):
        biz, acc = sample_account.business_id, sample_account.id
        temp_db.set_cached_balance(biz, acc, Decimal("1.00"))

        check = balance_calculator.rebuild_balance(biz, acc, actor="auditor")

        assert check.cached_balance == Decimal("1.00")
        assert check.replayed_balance == Decimal("1000.00")
        assert balance_calculator.verify_balance(biz, acc).is_consistent
        repairs = temp_db.list_audit_events(biz, entity_type="account", entity_id=str(acc))
        assert repairs[-1].action == "repair"
        assert repairs[-1].actor == "auditor"

    def test_rebuild_consistent_account_changes_nothing(self, temp_db, balance_calculator, sample_account):
        biz, acc = sample_account.business_id, sample_account.id
        before = len(temp_db.list_audit_events(biz))

        check = balance_calculator.rebuild_balance(biz, acc)

        assert check.is_consistent
        assert len(temp_db.list_audit_events(biz)) == before
