"""Shared plumbing for services that write ledger entries."""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from cashify.database.base import Database
from cashify.domain.balance import entry_effect
from cashify.domain.entities import Account, Business, Entry, Permission
from cashify.domain.errors import (
    CurrencyMismatchError,
    NotFoundError,
    ValidationError,
    account_inactive,
    account_not_found,
    business_not_found,
    entry_not_found,
)
from cashify.domain.guard import ConsistencyGuard
from cashify.domain.team import AccessControl


class LedgerWriter:
    """Base class for the entry service and the transfer coordinator.

    Subclasses call these helpers while holding the guard's locks and inside
    a database transaction.
    """

    def __init__(self, db: Database, guard: Optional[ConsistencyGuard] = None):
        self.db = db
        self.guard = guard or ConsistencyGuard(db)
        self.access = AccessControl(db)

    def _require_business(self, business_id: int) -> Business:
        business = self.db.get_business(business_id)
        if business is None:
            raise NotFoundError(business_not_found(business_id))
        return business

    def _require_account(
        self,
        business_id: int,
        account_id: int,
        currency: Optional[str] = None,
        active: bool = True,
    ) -> Account:
        account = self.db.get_account(business_id, account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if active and not account.is_active:
            raise ValidationError(account_inactive(account_id))
        if currency is not None and currency.strip().upper() != account.currency:
            raise CurrencyMismatchError(account.currency, currency.strip().upper())
        return account

    def _authorize(
        self,
        business_id: int,
        actor: Optional[str],
        permission: Permission,
        account_ids: Iterable[int] = (),
        book_ids: Iterable[Optional[int]] = (),
    ) -> None:
        self.access.authorize(business_id, actor, permission, account_ids, book_ids)

    def _require_entry(self, business_id: int, entry_id: int) -> Entry:
        entry = self.db.get_entry(business_id, entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def _apply_deltas(self, business: Business, deltas: Mapping[int, Decimal]) -> dict[int, Decimal]:
        """Check the balance policy for every account, then update the caches.

        All checks run before the first write so a rejected mutation leaves
        nothing behind, even before the transaction rolls back.

        Returns:
            New cached balance per account id
        """
        projected: dict[int, Decimal] = {}
        for account_id in sorted(deltas):
            account = self._require_account(business.id, account_id, active=False)
            new_balance = account.current_balance + deltas[account_id]
            self.guard.check_policy(business, account, new_balance)
            projected[account_id] = new_balance

        for account_id, new_balance in projected.items():
            if deltas[account_id] != 0:
                self.db.set_cached_balance(business.id, account_id, new_balance)
        return projected

    @staticmethod
    def _reversal_deltas(*entries: Entry) -> dict[int, Decimal]:
        """Deltas that undo the balance effect of the given entries."""
        deltas: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        for entry in entries:
            deltas[entry.account_id] -= entry_effect(entry)
        return dict(deltas)

    def _audit(
        self,
        business_id: int,
        entity_type: str,
        entity_id,
        action: str,
        actor: Optional[str] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
    ) -> None:
        self.db.record_audit_event(
            business_id,
            entity_type,
            str(entity_id),
            action,
            actor=actor,
            old_values=old_values,
            new_values=new_values,
        )
