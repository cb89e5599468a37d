"""Concurrent mutations of the same accounts."""

import threading
import pytest
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from cashify.domain.account import AccountService
from cashify.domain.balance import BalanceCalculator
from cashify.domain.errors import BusyError, InsufficientBalanceError
from cashify.domain.entry import EntryService
from cashify.domain.guard import ConsistencyGuard


@pytest.fixture
def patient_guard(temp_db):
    """Guard that waits long enough for every queued writer."""
    return ConsistencyGuard(temp_db, lock_timeout=30.0)


def run_together(count, action):
    """Start ``count`` calls of ``action(i)`` at the same moment; return results or errors."""
    barrier = threading.Barrier(count)

    def task(i):
        barrier.wait()
        try:
            return action(i)
        except Exception as error:  # collected for assertions
            return error

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(task, range(count)))


class TestConcurrentEntries:
    """Concurrent entries on one account."""

    def test_no_lost_updates(self, temp_db, patient_guard, sample_business, day):
        accounts = AccountService(temp_db, patient_guard)
        account_id = accounts.create_account(sample_business.id, "Till", initial_balance="500.00")

        def spend(i):
            return EntryService(temp_db, patient_guard).create_entry(
                sample_business.id, account_id, "expense", "100.00", day
            )

        results = run_together(2, spend)

        assert not [r for r in results if isinstance(r, Exception)]
        calculator = BalanceCalculator(temp_db, patient_guard)
        assert calculator.cached_balance(sample_business.id, account_id) == Decimal("300.00")
        assert calculator.current_balance(sample_business.id, account_id) == Decimal("300.00")

    def test_many_writers_keep_cache_consistent(self, temp_db, patient_guard, sample_business, day):
        accounts = AccountService(temp_db, patient_guard)
        account_id = accounts.create_account(sample_business.id, "Till", initial_balance="0.00")

        def write(i):
            kind = "income" if i % 2 == 0 else "expense"
            return EntryService(temp_db, patient_guard).create_entry(
                sample_business.id, account_id, kind, "1.25", day
            )

        results = run_together(8, write)

        assert not [r for r in results if isinstance(r, Exception)]
        check = BalanceCalculator(temp_db, patient_guard).verify_balance(sample_business.id, account_id)
        assert check.is_consistent
        assert check.replayed_balance == Decimal("0.00")
        sequences = [e.sequence for e in temp_db.list_entries_by_account(sample_business.id, account_id)]
        assert len(set(sequences)) == 8

    def test_policy_holds_under_contention(self, temp_db, patient_guard, strict_business, day):
        accounts = AccountService(temp_db, patient_guard)
        account_id = accounts.create_account(strict_business.id, "Till", initial_balance="150.00")

        def spend(i):
            return EntryService(temp_db, patient_guard).create_entry(
                strict_business.id, account_id, "expense", "100.00", day
            )

        results = run_together(2, spend)

        rejected = [r for r in results if isinstance(r, InsufficientBalanceError)]
        assert len(rejected) == 1
        assert accounts.get_account(strict_business.id, account_id).current_balance == Decimal("50.00")


class TestConcurrentTransfers:
    """Concurrent transfers between the same pair of accounts."""

    def test_opposite_directions_do_not_deadlock(self, temp_db, patient_guard, sample_business, day):
        accounts = AccountService(temp_db, patient_guard)
        first = accounts.create_account(sample_business.id, "First", initial_balance="1000.00")
        second = accounts.create_account(sample_business.id, "Second", initial_balance="1000.00")

        def move(i):
            source, target = (first, second) if i % 2 == 0 else (second, first)
            return EntryService(temp_db, patient_guard).transfers.create_transfer(
                sample_business.id, source, target, "10.00", day
            )

        results = run_together(6, move)

        assert not [r for r in results if isinstance(r, Exception)]
        calculator = BalanceCalculator(temp_db, patient_guard)
        assert calculator.current_balance(sample_business.id, first) == Decimal("1000.00")
        assert calculator.current_balance(sample_business.id, second) == Decimal("1000.00")
        assert calculator.verify_balance(sample_business.id, first).is_consistent
        assert calculator.verify_balance(sample_business.id, second).is_consistent


class TestBusy:
    """Writers that cannot get a lock in time fail with a retryable error."""

    def test_busy_when_account_is_held(self, temp_db, sample_business, day):
        accounts = AccountService(temp_db)
        account_id = accounts.create_account(sample_business.id, "Till", initial_balance="10.00")
        holder = ConsistencyGuard(temp_db)
        impatient = EntryService(temp_db, ConsistencyGuard(temp_db, lock_timeout=0.05))
        held = threading.Event()
        release = threading.Event()

        def hold_account():
            with holder.hold(account_id):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=hold_account)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(BusyError):
                impatient.create_entry(sample_business.id, account_id, "expense", "1.00", day)
        finally:
            release.set()
            thread.join()

        assert temp_db.list_entries_by_account(sample_business.id, account_id) == []
        impatient.create_entry(sample_business.id, account_id, "expense", "1.00", day)
