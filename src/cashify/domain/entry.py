"""Entry domain service.

Handles income and expense entries directly. Transfer halves are never
edited on their own; every change to one is routed through the transfer
coordinator so both sides move together.
"""

from datetime import date as date_type
from decimal import Decimal
from typing import Optional, Sequence

from cashify.database.base import Database
from cashify.domain.entities import (
    CategoryKind,
    Entry,
    EntryKind,
    EntryStatus,
    PaymentMode,
    Permission,
)
from cashify.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    book_not_found,
    category_not_found,
)
from cashify.domain.guard import ConsistencyGuard
from cashify.domain.ledger import LedgerWriter
from cashify.domain.money import validate_amount
from cashify.domain.serialization import entry_audit_values
from cashify.domain.transfer import TransferCoordinator
from cashify.logging_config import get_logger

logger = get_logger("entry")

_OPENING_STATUSES = (EntryStatus.PENDING, EntryStatus.CLEARED)


class EntryService(LedgerWriter):
    """Service for recording and editing ledger entries."""

    def __init__(self, db: Database, guard: Optional[ConsistencyGuard] = None):
        """Initialize entry service.

        Args:
            db: Database instance
            guard: Consistency guard; defaults to one sharing the database's locks
        """
        super().__init__(db, guard)
        self.transfers = TransferCoordinator(db, self.guard)

    def _check_category(self, business_id: int, category_id: int, kind: EntryKind) -> None:
        category = self.db.get_category(business_id, category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        if category.kind != CategoryKind(kind.value):
            raise ValidationError(
                f"Category '{category.name}' is an {category.kind.value} category "
                f"and cannot be used on an {kind.value} entry"
            )

    def _check_book(self, business_id: int, book_id: int) -> None:
        if self.db.get_book(business_id, book_id) is None:
            raise NotFoundError(book_not_found(book_id))

    @staticmethod
    def _payment_mode(value: PaymentMode | str) -> PaymentMode:
        try:
            mode = PaymentMode(value)
        except ValueError:
            raise ValidationError(f"Invalid payment mode '{value}'")
        if mode == PaymentMode.TRANSFER:
            raise ValidationError("Payment mode 'transfer' is reserved for transfers")
        return mode

    @staticmethod
    def _status(value: EntryStatus | str) -> EntryStatus:
        try:
            return EntryStatus(value)
        except ValueError:
            raise ValidationError(f"Invalid entry status '{value}'")

    def create_entry(
        self,
        business_id: int,
        account_id: int,
        kind: EntryKind | str,
        amount: Decimal | str | int,
        date: date_type,
        note: str = "",
        category_id: Optional[int] = None,
        book_id: Optional[int] = None,
        payment_mode: PaymentMode | str = PaymentMode.CASH,
        status: EntryStatus | str = EntryStatus.CLEARED,
        attachments: Sequence[str] = (),
        actor: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Entry:
        """Record an income or expense entry.

        Args:
            business_id: Owning business
            account_id: Account the entry posts to
            kind: income or expense
            amount: Positive amount with at most two decimal places
            date: Calendar date of the entry
            note: Free-text note
            category_id: Optional category; its kind must match ``kind``
            book_id: Optional book
            payment_mode: How the money moved
            status: pending or cleared
            attachments: Opaque attachment references
            actor: User recording the entry
            currency: Currency the caller expects; must match the account's

        Returns:
            The stored entry

        Raises:
            ValidationError: Bad kind, amount, status, category kind or inactive account
            NotFoundError: Account, category or book missing from the business
            CurrencyMismatchError: ``currency`` differs from the account currency
            InsufficientBalanceError: Expense would break the non-negative policy
            BusyError: The account lock was not acquired in time
            ForbiddenError: The actor may not record entries on the account or book
        """
        try:
            kind = EntryKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid entry kind '{kind}'")
        if kind.is_transfer:
            raise ValidationError("Transfer entries are created through transfers, not directly")
        amount = validate_amount(amount)
        status = self._status(status)
        if status not in _OPENING_STATUSES:
            raise ValidationError(f"New entries must be pending or cleared, not {status.value}")
        payment_mode = self._payment_mode(payment_mode)

        business = self._require_business(business_id)
        self._require_account(business_id, account_id, currency)
        if category_id is not None:
            self._check_category(business_id, category_id, kind)
        if book_id is not None:
            self._check_book(business_id, book_id)
        self._authorize(business_id, actor, Permission.CREATE_TRANSACTIONS, [account_id], [book_id])

        delta = amount if kind.is_credit else -amount
        with self.guard.hold(account_id):
            with self.db.transaction():
                self._require_account(business_id, account_id, currency)
                self._apply_deltas(business, {account_id: delta})
                entry_id = self.db.append_entry(
                    business_id,
                    account_id,
                    kind,
                    amount=amount,
                    date=date,
                    status=status,
                    note=note,
                    payment_mode=payment_mode.value,
                    category_id=category_id,
                    book_id=book_id,
                    attachments=attachments,
                    created_by=actor,
                )
                entry = self.db.get_entry(business_id, entry_id)
                self._audit(
                    business_id, "entry", entry_id, "create",
                    actor=actor, new_values=entry_audit_values(entry),
                )

        logger.info(
            "entry_created",
            extra={
                "business_id": business_id,
                "account_id": account_id,
                "entry_id": entry_id,
                "kind": kind,
                "amount": amount,
            },
        )
        return entry

    def get_entry(self, business_id: int, entry_id: int) -> Optional[Entry]:
        """Get entry by ID.

        Returns:
            Entry or None if not found in the business
        """
        return self.db.get_entry(business_id, entry_id)

    def list_entries(
        self,
        business_id: int,
        account_id: Optional[int] = None,
        start_date: Optional[date_type] = None,
        end_date: Optional[date_type] = None,
        kinds: Optional[Sequence[EntryKind | str]] = None,
        include_cancelled: bool = True,
    ) -> list[Entry]:
        """List entries in canonical order (date, then sequence).

        Args:
            business_id: Owning business
            account_id: Restrict to one account
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            kinds: Restrict to these kinds
            include_cancelled: Include cancelled entries
        """
        if account_id is not None:
            self._require_account(business_id, account_id, active=False)
            entries = self.db.list_entries_by_account(
                business_id, account_id, start_date=start_date, end_date=end_date
            )
            wanted = {EntryKind(k) for k in kinds} if kinds else None
            return [
                e
                for e in entries
                if (include_cancelled or not e.is_cancelled)
                and (wanted is None or e.kind in wanted)
            ]
        return self.db.list_entries(
            business_id,
            start_date=start_date,
            end_date=end_date,
            kinds=[EntryKind(k) for k in kinds] if kinds else None,
            include_cancelled=include_cancelled,
        )

    def update_entry(
        self,
        business_id: int,
        entry_id: int,
        amount: Optional[Decimal | str | int] = None,
        date: Optional[date_type] = None,
        note: Optional[str] = None,
        category_id: Optional[int] = None,
        clear_category: bool = False,
        payment_mode: Optional[PaymentMode | str] = None,
        book_id: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> Entry:
        """Edit an entry in place.

        For a transfer half, amount, date and note are applied to both halves.

        Raises:
            ImmutableEntryError: If the entry is reconciled
            InvalidStatusTransitionError: If the entry is cancelled
            ValidationError: Category or payment mode edits on a transfer
            InsufficientBalanceError: A larger expense would break the policy
        """
        current = self._require_entry(business_id, entry_id)
        if current.kind.is_transfer:
            if category_id is not None or clear_category:
                raise ValidationError("Transfers cannot have a category")
            if payment_mode is not None or book_id is not None:
                raise ValidationError("Edit the payment mode or book of a transfer by recreating it")
            out_entry, in_entry = self.transfers.update_transfer(
                business_id,
                current.transfer_group_id,
                amount=amount,
                date=date,
                note=note,
                actor=actor,
            )
            return out_entry if out_entry.id == entry_id else in_entry

        if amount is not None:
            amount = validate_amount(amount)
        if payment_mode is not None:
            payment_mode = self._payment_mode(payment_mode)
        if category_id is not None:
            self._check_category(business_id, category_id, current.kind)
        if book_id is not None:
            self._check_book(business_id, book_id)
        business = self._require_business(business_id)
        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [current.account_id], [current.book_id, book_id],
        )

        with self.guard.hold(current.account_id):
            with self.db.transaction():
                current = self._require_entry(business_id, entry_id)
                self.guard.check_editable(current)

                if amount is not None and amount != current.amount:
                    change = amount - current.amount
                    self._apply_deltas(
                        business,
                        {current.account_id: change if current.kind.is_credit else -change},
                    )
                updated = self.db.update_entry(
                    business_id,
                    entry_id,
                    amount=amount,
                    date=date,
                    note=note,
                    category_id=category_id,
                    book_id=book_id,
                    payment_mode=payment_mode.value if payment_mode else None,
                    update_category=clear_category,
                )
                self._audit(
                    business_id, "entry", entry_id, "update",
                    actor=actor,
                    old_values=entry_audit_values(current),
                    new_values=entry_audit_values(updated),
                )

        logger.info(
            "entry_updated",
            extra={"business_id": business_id, "account_id": updated.account_id, "entry_id": entry_id},
        )
        return updated

    def cancel_entry(self, business_id: int, entry_id: int, actor: Optional[str] = None) -> Entry:
        """Soft-cancel an entry. Cancelling twice is a no-op.

        A transfer half cancels the whole transfer.

        Raises:
            ImmutableEntryError: If the entry is reconciled
        """
        current = self._require_entry(business_id, entry_id)
        if current.kind.is_transfer:
            out_entry, in_entry = self.transfers.cancel_transfer(
                business_id, current.transfer_group_id, actor=actor
            )
            return out_entry if out_entry.id == entry_id else in_entry

        business = self._require_business(business_id)
        self._authorize(
            business_id, actor, Permission.DELETE_TRANSACTIONS,
            [current.account_id], [current.book_id],
        )
        with self.guard.hold(current.account_id):
            with self.db.transaction():
                current = self._require_entry(business_id, entry_id)
                if not self.guard.check_transition(current, EntryStatus.CANCELLED):
                    return current
                self._apply_deltas(business, self._reversal_deltas(current))
                cancelled = self.db.cancel_entry(business_id, entry_id)
                self._audit(
                    business_id, "entry", entry_id, "cancel",
                    actor=actor,
                    old_values={"status": current.status.value},
                    new_values={"status": EntryStatus.CANCELLED.value},
                )

        logger.info(
            "entry_cancelled",
            extra={"business_id": business_id, "account_id": current.account_id, "entry_id": entry_id},
        )
        return cancelled

    def set_status(
        self,
        business_id: int,
        entry_id: int,
        status: EntryStatus | str,
        actor: Optional[str] = None,
    ) -> Entry:
        """Move an entry along its lifecycle (pending, cleared, reconciled).

        Raises:
            ValidationError: Unknown status
            InvalidStatusTransitionError: Forbidden move
            ImmutableEntryError: Cancelling a reconciled entry
        """
        status = self._status(status)
        if status == EntryStatus.CANCELLED:
            return self.cancel_entry(business_id, entry_id, actor=actor)

        current = self._require_entry(business_id, entry_id)
        if current.kind.is_transfer:
            out_entry, in_entry = self.transfers.set_transfer_status(
                business_id, current.transfer_group_id, status, actor=actor
            )
            return out_entry if out_entry.id == entry_id else in_entry

        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [current.account_id], [current.book_id],
        )
        with self.guard.hold(current.account_id):
            with self.db.transaction():
                current = self._require_entry(business_id, entry_id)
                if not self.guard.check_transition(current, status):
                    return current
                updated = self.db.set_entry_status(business_id, entry_id, status)
                self._audit(
                    business_id, "entry", entry_id, "status",
                    actor=actor,
                    old_values={"status": current.status.value},
                    new_values={"status": status.value},
                )
        return updated

    def edit_entry(
        self,
        business_id: int,
        entry_id: int,
        status: Optional[EntryStatus | str] = None,
        actor: Optional[str] = None,
        **changes,
    ) -> Entry:
        """Apply field edits and then a status change as one unit of work.

        The status is checked against the entry's lifecycle before anything
        is written, and both steps share one transaction, so a rejected
        request leaves the entry as it was.

        Args:
            status: Optional target status
            **changes: Keyword arguments accepted by ``update_entry``

        Raises:
            ValidationError: Unknown status, or any error ``update_entry`` raises
            InvalidStatusTransitionError: Forbidden move
            ImmutableEntryError: Editing or cancelling a reconciled entry
        """
        if status is not None:
            status = self._status(status)
        current = self._require_entry(business_id, entry_id)
        account_ids = [current.account_id]
        if current.kind.is_transfer:
            pair = self.transfers.get_transfer(business_id, current.transfer_group_id)
            account_ids = [half.account_id for half in pair]

        with self.guard.hold(*account_ids):
            with self.db.transaction():
                current = self._require_entry(business_id, entry_id)
                if status is not None:
                    self.guard.check_transition(current, status)
                entry = current
                if changes:
                    entry = self.update_entry(business_id, entry_id, actor=actor, **changes)
                if status is not None:
                    entry = self.set_status(business_id, entry_id, status, actor=actor)
        return entry

    def reverse_entry(
        self,
        business_id: int,
        entry_id: int,
        actor: Optional[str] = None,
        reversal_date: Optional[date_type] = None,
    ) -> Entry:
        """Undo a reconciled entry by posting its opposite.

        Returns:
            The reversing entry (for a transfer half, the half of the new
            transfer posted to the same account)

        Raises:
            ValidationError: If the entry is not reconciled
            ConflictError: If the entry was already reversed
        """
        current = self._require_entry(business_id, entry_id)
        if current.kind.is_transfer:
            group_id = self.transfers.reverse_transfer(
                business_id, current.transfer_group_id, actor=actor, reversal_date=reversal_date
            )
            new_out, new_in = self.transfers.get_transfer(business_id, group_id)
            return new_out if new_out.account_id == current.account_id else new_in

        if current.status != EntryStatus.RECONCILED:
            raise ValidationError(
                f"Entry {entry_id} is {current.status.value}; "
                "only reconciled entries are reversed, cancel it instead"
            )
        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [current.account_id], [current.book_id],
        )
        business = self._require_business(business_id)
        opposite = EntryKind.EXPENSE if current.kind == EntryKind.INCOME else EntryKind.INCOME

        with self.guard.hold(current.account_id):
            with self.db.transaction():
                for entry in self.db.list_entries_by_account(business_id, current.account_id):
                    if entry.reverses_entry_id == entry_id and not entry.is_cancelled:
                        raise ConflictError(f"Entry {entry_id} was already reversed")
                self._apply_deltas(business, self._reversal_deltas(current))
                reversal_id = self.db.append_entry(
                    business_id,
                    current.account_id,
                    opposite,
                    amount=current.amount,
                    date=reversal_date or date_type.today(),
                    status=EntryStatus.CLEARED,
                    note=f"Reversal of entry {entry_id}",
                    payment_mode=current.payment_mode.value,
                    book_id=current.book_id,
                    reverses_entry_id=entry_id,
                    created_by=actor,
                )
                reversal = self.db.get_entry(business_id, reversal_id)
                self._audit(
                    business_id, "entry", entry_id, "reverse",
                    actor=actor,
                    new_values={"reversal_entry_id": reversal_id, **entry_audit_values(reversal)},
                )

        logger.info(
            "entry_reversed",
            extra={
                "business_id": business_id,
                "account_id": current.account_id,
                "entry_id": entry_id,
                "reversal_entry_id": reversal_id,
            },
        )
        return reversal
