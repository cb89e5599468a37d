"""Consistency guard: per-account serialization and ledger rule checks."""

import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Optional, Sequence
from weakref import WeakKeyDictionary

from cashify.config import DEFAULT_LOCK_TIMEOUT
from cashify.database.base import Database
from cashify.domain.entities import Account, Business, Entry, EntryKind, EntryStatus
from cashify.domain.errors import (
    BusyError,
    ConsistencyViolationError,
    ImmutableEntryError,
    InsufficientBalanceError,
    InvalidStatusTransitionError,
)
from cashify.logging_config import get_logger

logger = get_logger("guard")

ALLOWED_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.PENDING: frozenset({EntryStatus.CLEARED, EntryStatus.CANCELLED}),
    EntryStatus.CLEARED: frozenset({EntryStatus.RECONCILED, EntryStatus.CANCELLED}),
    EntryStatus.RECONCILED: frozenset(),
    EntryStatus.CANCELLED: frozenset(),
}


class AccountLocks:
    """Registry of named locks keyed by account id.

    One registry exists per Database instance so every service bound to the
    same database serializes on the same locks.
    """

    _registries: "WeakKeyDictionary[Database, AccountLocks]" = WeakKeyDictionary()
    _registry_lock = threading.Lock()

    def __init__(self):
        self._locks: dict[int, threading.RLock] = {}
        self._mutex = threading.Lock()

    @classmethod
    def for_database(cls, db: Database) -> "AccountLocks":
        with cls._registry_lock:
            locks = cls._registries.get(db)
            if locks is None:
                locks = cls()
                cls._registries[db] = locks
            return locks

    def lock_for(self, account_id: int) -> threading.RLock:
        with self._mutex:
            lock = self._locks.get(account_id)
            if lock is None:
                # Re-entrant so a transfer can run inside an entry operation
                # on the same thread.
                lock = threading.RLock()
                self._locks[account_id] = lock
            return lock


class ConsistencyGuard:
    """Serializes mutations per account and enforces ledger rules."""

    def __init__(
        self,
        db: Database,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        locks: Optional[AccountLocks] = None,
    ):
        """Initialize the guard.

        Args:
            db: Database instance
            lock_timeout: Seconds to wait for each account lock
            locks: Lock registry; defaults to the one shared by ``db``
        """
        self.db = db
        self.lock_timeout = lock_timeout
        self.locks = locks if locks is not None else AccountLocks.for_database(db)

    @contextmanager
    def hold(self, *account_ids: int) -> Iterator[None]:
        """Hold the locks of the given accounts for the duration of the block.

        Locks are taken in ascending account id order so two operations
        touching the same pair of accounts cannot deadlock.

        Raises:
            BusyError: If a lock is not acquired within ``lock_timeout``
        """
        acquired = []
        try:
            for account_id in sorted(set(account_ids)):
                lock = self.locks.lock_for(account_id)
                if not lock.acquire(timeout=self.lock_timeout):
                    logger.warning(
                        "account_lock_timeout",
                        extra={"account_id": account_id, "timeout": self.lock_timeout},
                    )
                    raise BusyError(account_id, self.lock_timeout)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def check_policy(self, business: Business, account: Account, projected: Decimal) -> None:
        """Reject a mutation that would take a balance below zero.

        Only applies when the business enforces non-negative balances. A
        mutation that leaves an already negative balance no worse passes.
        """
        if not business.enforce_non_negative:
            return
        if projected < 0 and projected < account.current_balance:
            raise InsufficientBalanceError(account.id, account.current_balance, projected)

    def check_transition(self, entry: Entry, new_status: EntryStatus) -> bool:
        """Validate a status change.

        Returns:
            False when the entry is already in ``new_status`` (no-op), True otherwise

        Raises:
            ImmutableEntryError: If a reconciled entry would be cancelled in place
            InvalidStatusTransitionError: For any other forbidden move
        """
        new_status = EntryStatus(new_status)
        if entry.status == new_status:
            return False
        if new_status in ALLOWED_TRANSITIONS[entry.status]:
            return True
        if entry.status == EntryStatus.RECONCILED:
            raise ImmutableEntryError(
                f"Entry {entry.id} is reconciled; post a reversing entry instead"
            )
        raise InvalidStatusTransitionError(
            f"Entry {entry.id} cannot move from {entry.status.value} to {new_status.value}"
        )

    def check_editable(self, entry: Entry) -> None:
        """Reject in-place edits of reconciled or cancelled entries."""
        if entry.status == EntryStatus.RECONCILED:
            raise ImmutableEntryError(
                f"Entry {entry.id} is reconciled; post a reversing entry instead"
            )
        if entry.status == EntryStatus.CANCELLED:
            raise InvalidStatusTransitionError(f"Entry {entry.id} is cancelled")

    def check_pair(self, transfer_group_id: str, entries: Sequence[Entry]) -> tuple[Entry, Entry]:
        """Validate a transfer pair and return it as (transfer-out, transfer-in).

        Raises:
            ConsistencyViolationError: If the pair is incomplete or its halves disagree
        """
        problem = None
        out_entry = in_entry = None
        if len(entries) != 2:
            problem = f"expected 2 entries, found {len(entries)}"
        else:
            by_kind = {entry.kind: entry for entry in entries}
            out_entry = by_kind.get(EntryKind.TRANSFER_OUT)
            in_entry = by_kind.get(EntryKind.TRANSFER_IN)
            if out_entry is None or in_entry is None:
                problem = "pair is not one transfer-out and one transfer-in"
            elif out_entry.linked_entry_id != in_entry.id or in_entry.linked_entry_id != out_entry.id:
                problem = "linked_entry_id is not symmetric"
            elif out_entry.amount != in_entry.amount:
                problem = f"amounts differ ({out_entry.amount} vs {in_entry.amount})"
            elif out_entry.date != in_entry.date:
                problem = "dates differ"
            elif out_entry.account_id == in_entry.account_id:
                problem = "both halves post to the same account"
            elif out_entry.status != in_entry.status:
                problem = f"statuses differ ({out_entry.status.value} vs {in_entry.status.value})"

        if problem is not None:
            error = ConsistencyViolationError(
                f"Transfer {transfer_group_id} is inconsistent: {problem}",
                transfer_group_id=transfer_group_id,
                entry_ids=[entry.id for entry in entries],
            )
            logger.error(
                "transfer_pair_inconsistent",
                exc_info=error,
                extra={"transfer_group_id": transfer_group_id, "problem": problem},
            )
            raise error
        return out_entry, in_entry
