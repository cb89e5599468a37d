"""Balance calculator.

Balances are derived by replaying an account's entries in canonical order
(date ascending, then ledger sequence ascending) starting from the account's
initial balance. The accounts table keeps a cached snapshot that writers
update incrementally; ``verify_balance`` compares the two.

Replay is O(n) in the number of entries of the account.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from cashify.database.base import Database
from cashify.database.mappers import to_money
from cashify.domain.entities import Account, BalanceCheck, Entry, RunningBalance
from cashify.domain.errors import (
    ConsistencyViolationError,
    CurrencyMismatchError,
    NotFoundError,
    account_not_found,
)
from cashify.domain.guard import ConsistencyGuard
from cashify.logging_config import get_logger

logger = get_logger("balance")

ZERO = Decimal("0.00")


def entry_effect(entry: Entry) -> Decimal:
    """Signed effect of an entry on its account's balance.

    Income and transfer-in add, expense and transfer-out subtract,
    cancelled entries contribute nothing.
    """
    if entry.is_cancelled:
        return ZERO
    return entry.amount if entry.kind.is_credit else -entry.amount


def replay(initial_balance: Decimal, entries: Iterable[Entry]) -> Decimal:
    """Fold entries (already in canonical order) onto an opening balance."""
    balance = initial_balance
    for entry in entries:
        balance += entry_effect(entry)
    return balance


class BalanceCalculator:
    """Derives current and running balances from entry history."""

    def __init__(self, db: Database, guard: Optional[ConsistencyGuard] = None):
        """Initialize balance calculator.

        Args:
            db: Database instance
            guard: Guard used by the explicit repair operation
        """
        self.db = db
        self.guard = guard or ConsistencyGuard(db)

    def _require_account(
        self, business_id: int, account_id: int, currency: Optional[str] = None
    ) -> Account:
        account = self.db.get_account(business_id, account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if currency is not None and currency.upper() != account.currency:
            raise CurrencyMismatchError(account.currency, currency.upper())
        return account

    def current_balance(
        self, business_id: int, account_id: int, currency: Optional[str] = None
    ) -> Decimal:
        """Replay the account's full history.

        Args:
            business_id: Owning business
            account_id: Account ID
            currency: Currency the caller expects; must match the account's

        Raises:
            NotFoundError: If the account does not exist in the business
            CurrencyMismatchError: If ``currency`` differs from the account currency
        """
        with self.db.transaction():
            account = self._require_account(business_id, account_id, currency)
            entries = self.db.list_entries_by_account(business_id, account_id)
            return replay(account.initial_balance, entries)

    def cached_balance(self, business_id: int, account_id: int) -> Decimal:
        """Return the denormalised snapshot stored on the account."""
        return self._require_account(business_id, account_id).current_balance

    def running_balances(
        self,
        business_id: int,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_cancelled: bool = False,
        currency: Optional[str] = None,
    ) -> list[RunningBalance]:
        """Pair each entry with the balance right after it.

        Entries dated before ``start_date`` are not returned but still feed
        the opening balance of the window. Cancelled entries are omitted
        unless ``include_cancelled`` is set, in which case they carry the
        unchanged balance.
        """
        with self.db.transaction():
            account = self._require_account(business_id, account_id, currency)
            entries = self.db.list_entries_by_account(business_id, account_id, end_date=end_date)

        balance = account.initial_balance
        result = []
        for entry in entries:
            balance += entry_effect(entry)
            if start_date is not None and entry.date < start_date:
                continue
            if entry.is_cancelled and not include_cancelled:
                continue
            result.append(RunningBalance(entry=entry, balance_after=balance))
        return result

    def check_balance(self, business_id: int, account_id: int) -> BalanceCheck:
        """Compare cache and replay without raising."""
        with self.db.transaction():
            account = self._require_account(business_id, account_id)
            entries = self.db.list_entries_by_account(business_id, account_id)
        return BalanceCheck(
            account_id=account_id,
            cached_balance=account.current_balance,
            replayed_balance=to_money(replay(account.initial_balance, entries)),
            entry_count=len(entries),
        )

    def verify_balance(self, business_id: int, account_id: int) -> BalanceCheck:
        """Confirm that the cached balance equals the replayed balance.

        Raises:
            ConsistencyViolationError: On drift. The cache is left untouched.
        """
        check = self.check_balance(business_id, account_id)
        if not check.is_consistent:
            error = ConsistencyViolationError(
                f"Balance drift on account {account_id}: cached {check.cached_balance}, "
                f"replayed {check.replayed_balance}",
                business_id=business_id,
                account_id=account_id,
                cached_balance=check.cached_balance,
                replayed_balance=check.replayed_balance,
            )
            logger.error(
                "balance_drift_detected",
                exc_info=error,
                extra={
                    "business_id": business_id,
                    "account_id": account_id,
                    "cached_balance": check.cached_balance,
                    "replayed_balance": check.replayed_balance,
                    "entry_count": check.entry_count,
                },
            )
            raise error
        return check

    def rebuild_balance(
        self, business_id: int, account_id: int, actor: Optional[str] = None
    ) -> BalanceCheck:
        """Explicit repair: overwrite the cache with the replayed balance.

        Returns:
            The check observed before the repair
        """
        with self.guard.hold(account_id):
            with self.db.transaction():
                check = self.check_balance(business_id, account_id)
                if not check.is_consistent:
                    self.db.set_cached_balance(business_id, account_id, check.replayed_balance)
                    self.db.record_audit_event(
                        business_id,
                        "account",
                        str(account_id),
                        "repair",
                        actor=actor,
                        old_values={"current_balance": str(check.cached_balance)},
                        new_values={"current_balance": str(check.replayed_balance)},
                    )
        if not check.is_consistent:
            logger.warning(
                "balance_cache_rebuilt",
                extra={
                    "business_id": business_id,
                    "account_id": account_id,
                    "cached_balance": check.cached_balance,
                    "replayed_balance": check.replayed_balance,
                },
            )
        return check
