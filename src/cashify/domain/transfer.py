"""Transfer coordinator.

A transfer is two entries, a transfer-out on the source account and a
transfer-in on the target account, sharing one ``transfer_group_id`` and
pointing at each other through ``linked_entry_id``. Both halves, both
balance cache updates and the audit row are written in one storage
transaction while both account locks are held, so no reader ever sees
half a transfer.
"""

from datetime import date as date_type
from decimal import Decimal
from typing import Optional, Sequence
from uuid import uuid4

from cashify.domain.entities import Entry, EntryKind, EntryStatus, PaymentMode, Permission
from cashify.domain.errors import (
    ConflictError,
    CurrencyMismatchError,
    InvalidTransferError,
    NotFoundError,
    ValidationError,
    book_not_found,
    transfer_not_found,
)
from cashify.domain.ledger import LedgerWriter
from cashify.domain.money import validate_amount
from cashify.logging_config import get_logger

logger = get_logger("transfer")


class TransferCoordinator(LedgerWriter):
    """Creates, edits, cancels and reverses transfer pairs atomically."""

    def create_transfer(
        self,
        business_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal | str | int,
        date: date_type,
        note: str = "",
        actor: Optional[str] = None,
        currency: Optional[str] = None,
        book_id: Optional[int] = None,
        payment_mode: PaymentMode | str = PaymentMode.TRANSFER,
        attachments: Sequence[str] = (),
    ) -> str:
        """Move money between two accounts of the same business.

        Args:
            business_id: Owning business
            from_account_id: Account receiving the transfer-out entry
            to_account_id: Account receiving the transfer-in entry
            amount: Positive amount with at most two decimal places
            date: Calendar date of both halves
            note: Note copied to both halves
            actor: User performing the transfer
            currency: Currency the caller expects; must match both accounts
            book_id: Optional book for both halves
            payment_mode: Payment mode for both halves
            attachments: Opaque attachment references

        Returns:
            The transfer group id

        Raises:
            InvalidTransferError: Same account on both sides or non-positive amount
            NotFoundError: An account or the book is missing from the business
            CurrencyMismatchError: The accounts (or the stated currency) disagree
            InsufficientBalanceError: The source would go negative under the policy
            BusyError: An account lock was not acquired in time
            ForbiddenError: The actor may not record transfers between these accounts
        """
        if from_account_id == to_account_id:
            raise InvalidTransferError("Cannot transfer to the same account")
        amount = validate_amount(amount, InvalidTransferError)
        try:
            payment_mode = PaymentMode(payment_mode)
        except ValueError:
            raise ValidationError(f"Invalid payment mode '{payment_mode}'")

        business = self._require_business(business_id)
        source = self._require_account(business_id, from_account_id, currency)
        target = self._require_account(business_id, to_account_id, currency)
        if source.currency != target.currency:
            raise CurrencyMismatchError(source.currency, target.currency)
        if book_id is not None and self.db.get_book(business_id, book_id) is None:
            raise NotFoundError(book_not_found(book_id))
        self._authorize(
            business_id, actor, Permission.CREATE_TRANSACTIONS,
            [from_account_id, to_account_id], [book_id],
        )

        group_id = self._write_pair(
            business,
            from_account_id,
            to_account_id,
            amount,
            date,
            note=note,
            actor=actor,
            book_id=book_id,
            payment_mode=payment_mode,
            attachments=attachments,
        )
        logger.info(
            "transfer_created",
            extra={
                "business_id": business_id,
                "transfer_group_id": group_id,
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "amount": amount,
            },
        )
        return group_id

    def _write_pair(
        self,
        business,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        date: date_type,
        note: Optional[str],
        actor: Optional[str],
        book_id: Optional[int],
        payment_mode: PaymentMode,
        attachments: Sequence[str],
        reverses: Optional[tuple[int, int]] = None,
    ) -> str:
        group_id = uuid4().hex
        with self.guard.hold(from_account_id, to_account_id):
            with self.db.transaction():
                # Re-read under the locks: accounts may have been deactivated meanwhile
                self._require_account(business.id, from_account_id)
                self._require_account(business.id, to_account_id)
                if reverses:
                    self._check_not_reversed(business.id, to_account_id, reverses)
                self._apply_deltas(business, {from_account_id: -amount, to_account_id: amount})
                common = dict(
                    amount=amount,
                    date=date,
                    status=EntryStatus.CLEARED,
                    note=note,
                    payment_mode=payment_mode.value,
                    book_id=book_id,
                    transfer_group_id=group_id,
                    attachments=attachments,
                    created_by=actor,
                )
                out_id = self.db.append_entry(
                    business.id,
                    from_account_id,
                    EntryKind.TRANSFER_OUT,
                    reverses_entry_id=reverses[0] if reverses else None,
                    **common,
                )
                in_id = self.db.append_entry(
                    business.id,
                    to_account_id,
                    EntryKind.TRANSFER_IN,
                    reverses_entry_id=reverses[1] if reverses else None,
                    **common,
                )
                self.db.link_entries(business.id, out_id, in_id)
                self._audit(
                    business.id,
                    "transfer",
                    group_id,
                    "reverse" if reverses else "create",
                    actor=actor,
                    new_values={
                        "from_account_id": from_account_id,
                        "to_account_id": to_account_id,
                        "amount": str(amount),
                        "date": date.isoformat(),
                        "entry_ids": [out_id, in_id],
                    },
                )
        return group_id

    def _check_not_reversed(
        self, business_id: int, account_id: int, reversed_ids: tuple[int, int]
    ) -> None:
        for entry in self.db.list_entries_by_account(business_id, account_id):
            if entry.reverses_entry_id in reversed_ids and not entry.is_cancelled:
                raise ConflictError(
                    f"Entries {reversed_ids[0]} and {reversed_ids[1]} were already reversed"
                )

    def get_transfer(self, business_id: int, transfer_group_id: str) -> tuple[Entry, Entry]:
        """Return the validated (transfer-out, transfer-in) pair.

        Raises:
            NotFoundError: If no entry carries the group id in this business
            ConsistencyViolationError: If the pair is incomplete or inconsistent
        """
        entries = self.db.list_entries_by_transfer_group(business_id, transfer_group_id)
        if not entries:
            raise NotFoundError(transfer_not_found(transfer_group_id))
        return self.guard.check_pair(transfer_group_id, entries)

    def cancel_transfer(
        self, business_id: int, transfer_group_id: str, actor: Optional[str] = None
    ) -> tuple[Entry, Entry]:
        """Cancel both halves of a transfer. Cancelling twice is a no-op.

        Raises:
            ImmutableEntryError: If the transfer is reconciled
            ConsistencyViolationError: If only one half exists or the halves disagree
        """
        business = self._require_business(business_id)
        out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
        self._authorize(
            business_id, actor, Permission.DELETE_TRANSACTIONS,
            [out_entry.account_id, in_entry.account_id], [out_entry.book_id],
        )

        with self.guard.hold(out_entry.account_id, in_entry.account_id):
            with self.db.transaction():
                out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
                if not self.guard.check_transition(out_entry, EntryStatus.CANCELLED):
                    return out_entry, in_entry

                self._apply_deltas(business, self._reversal_deltas(out_entry, in_entry))
                cancelled_out = self.db.cancel_entry(business_id, out_entry.id)
                cancelled_in = self.db.cancel_entry(business_id, in_entry.id)
                self._audit(
                    business_id,
                    "transfer",
                    transfer_group_id,
                    "cancel",
                    actor=actor,
                    old_values={"status": out_entry.status.value},
                    new_values={"status": EntryStatus.CANCELLED.value},
                )

        logger.info(
            "transfer_cancelled",
            extra={"business_id": business_id, "transfer_group_id": transfer_group_id},
        )
        return cancelled_out, cancelled_in

    def update_transfer(
        self,
        business_id: int,
        transfer_group_id: str,
        amount: Optional[Decimal | str | int] = None,
        date: Optional[date_type] = None,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> tuple[Entry, Entry]:
        """Edit amount, date or note on both halves together.

        Raises:
            InvalidTransferError: If the new amount is not positive
            ImmutableEntryError: If the transfer is reconciled
            InsufficientBalanceError: If a larger amount breaks the policy
        """
        if amount is not None:
            amount = validate_amount(amount, InvalidTransferError)
        business = self._require_business(business_id)
        out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [out_entry.account_id, in_entry.account_id], [out_entry.book_id],
        )

        with self.guard.hold(out_entry.account_id, in_entry.account_id):
            with self.db.transaction():
                out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
                self.guard.check_editable(out_entry)

                if amount is not None and amount != out_entry.amount:
                    change = amount - out_entry.amount
                    self._apply_deltas(
                        business,
                        {out_entry.account_id: -change, in_entry.account_id: change},
                    )
                new_out = self.db.update_entry(
                    business_id, out_entry.id, amount=amount, date=date, note=note
                )
                new_in = self.db.update_entry(
                    business_id, in_entry.id, amount=amount, date=date, note=note
                )
                self.guard.check_pair(transfer_group_id, [new_out, new_in])
                self._audit(
                    business_id,
                    "transfer",
                    transfer_group_id,
                    "update",
                    actor=actor,
                    old_values={
                        "amount": str(out_entry.amount),
                        "date": out_entry.date.isoformat(),
                        "note": out_entry.note,
                    },
                    new_values={
                        "amount": str(new_out.amount),
                        "date": new_out.date.isoformat(),
                        "note": new_out.note,
                    },
                )

        logger.info(
            "transfer_updated",
            extra={"business_id": business_id, "transfer_group_id": transfer_group_id},
        )
        return new_out, new_in

    def set_transfer_status(
        self,
        business_id: int,
        transfer_group_id: str,
        status: EntryStatus | str,
        actor: Optional[str] = None,
    ) -> tuple[Entry, Entry]:
        """Move both halves to a new status together."""
        try:
            status = EntryStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid entry status '{status}'")
        if status == EntryStatus.CANCELLED:
            return self.cancel_transfer(business_id, transfer_group_id, actor=actor)

        out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [out_entry.account_id, in_entry.account_id], [out_entry.book_id],
        )
        with self.guard.hold(out_entry.account_id, in_entry.account_id):
            with self.db.transaction():
                out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
                if not self.guard.check_transition(out_entry, status):
                    return out_entry, in_entry
                new_out = self.db.set_entry_status(business_id, out_entry.id, status)
                new_in = self.db.set_entry_status(business_id, in_entry.id, status)
                self._audit(
                    business_id,
                    "transfer",
                    transfer_group_id,
                    "status",
                    actor=actor,
                    old_values={"status": out_entry.status.value},
                    new_values={"status": status.value},
                )
        return new_out, new_in

    def reverse_transfer(
        self,
        business_id: int,
        transfer_group_id: str,
        actor: Optional[str] = None,
        reversal_date: Optional[date_type] = None,
    ) -> str:
        """Undo a reconciled transfer with a new transfer in the other direction.

        Returns:
            The transfer group id of the reversing transfer

        Raises:
            ValidationError: If the transfer is not reconciled
            ConflictError: If the transfer was already reversed
        """
        business = self._require_business(business_id)
        out_entry, in_entry = self.get_transfer(business_id, transfer_group_id)
        self._authorize(
            business_id, actor, Permission.EDIT_TRANSACTIONS,
            [out_entry.account_id, in_entry.account_id], [out_entry.book_id],
        )
        if out_entry.status != EntryStatus.RECONCILED:
            raise ValidationError(
                f"Transfer {transfer_group_id} is {out_entry.status.value}; "
                "only reconciled transfers are reversed, cancel it instead"
            )

        # The new transfer-out lands on the original target, so it reverses the
        # original transfer-in (and the other way round).
        group_id = self._write_pair(
            business,
            in_entry.account_id,
            out_entry.account_id,
            out_entry.amount,
            reversal_date or date_type.today(),
            note=f"Reversal of transfer {transfer_group_id}",
            actor=actor,
            book_id=out_entry.book_id,
            payment_mode=out_entry.payment_mode,
            attachments=(),
            reverses=(in_entry.id, out_entry.id),
        )
        logger.info(
            "transfer_reversed",
            extra={
                "business_id": business_id,
                "transfer_group_id": group_id,
                "reversed_transfer_group_id": transfer_group_id,
            },
        )
        return group_id
