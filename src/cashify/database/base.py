"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from cashify.domain.entities import (
    Account,
    AuditEvent,
    Book,
    Business,
    Category,
    Entry,
    EntryKind,
    EntryStatus,
    TeamMember,
)


class Database(ABC):
    """Abstract database interface for cashify.

    Every read and write is scoped to a business; an id that belongs to a
    different business behaves exactly like a missing id.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open a unit of work.

        All calls made inside the block on the same thread share one storage
        transaction, committed on exit and rolled back on any exception.
        Nested blocks join the outer one.
        """
        pass

    # Business operations
    @abstractmethod
    def create_business(self, name: str, currency: str, enforce_non_negative: bool = False) -> int:
        """Create a business. Returns business ID."""
        pass

    @abstractmethod
    def get_business(self, business_id: int) -> Optional[Business]:
        """Get business by ID."""
        pass

    @abstractmethod
    def list_businesses(self) -> list[Business]:
        """List all businesses."""
        pass

    @abstractmethod
    def update_business(
        self,
        business_id: int,
        name: Optional[str] = None,
        enforce_non_negative: Optional[bool] = None,
    ) -> Business:
        """Update business fields."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        business_id: int,
        name: str,
        kind: str,
        currency: str,
        initial_balance: Decimal,
        created_by: Optional[str] = None,
    ) -> int:
        """Create an account whose cached balance starts at the initial balance."""
        pass

    @abstractmethod
    def get_account(self, business_id: int, account_id: int) -> Optional[Account]:
        """Get account by ID within a business."""
        pass

    @abstractmethod
    def list_accounts(self, business_id: int, include_inactive: bool = False) -> list[Account]:
        """List accounts of a business."""
        pass

    @abstractmethod
    def update_account(
        self,
        business_id: int,
        account_id: int,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Account:
        """Update account name or active flag."""
        pass

    @abstractmethod
    def set_cached_balance(self, business_id: int, account_id: int, balance: Decimal) -> None:
        """Overwrite the denormalised balance snapshot of an account."""
        pass

    # Category and book operations
    @abstractmethod
    def create_category(self, business_id: int, name: str, kind: str) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, business_id: int, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, business_id: int, kind: Optional[str] = None) -> list[Category]:
        """List categories, optionally filtered by kind."""
        pass

    @abstractmethod
    def create_book(
        self, business_id: int, name: str, book_type: str, description: Optional[str] = None
    ) -> int:
        """Create a book. Returns book ID."""
        pass

    @abstractmethod
    def get_book(self, business_id: int, book_id: int) -> Optional[Book]:
        """Get book by ID."""
        pass

    @abstractmethod
    def list_books(self, business_id: int) -> list[Book]:
        """List books of a business."""
        pass

    # Entry operations
    @abstractmethod
    def append_entry(
        self,
        business_id: int,
        account_id: int,
        kind: EntryKind,
        amount: Decimal,
        date: date,
        status: EntryStatus = EntryStatus.CLEARED,
        note: Optional[str] = None,
        payment_mode: str = "cash",
        category_id: Optional[int] = None,
        book_id: Optional[int] = None,
        transfer_group_id: Optional[str] = None,
        reverses_entry_id: Optional[int] = None,
        attachments: Sequence[str] = (),
        created_by: Optional[str] = None,
    ) -> int:
        """Append an entry, assigning the next ledger sequence number. Returns entry ID."""
        pass

    @abstractmethod
    def get_entry(self, business_id: int, entry_id: int) -> Optional[Entry]:
        """Get entry by ID within a business."""
        pass

    @abstractmethod
    def list_entries_by_account(
        self,
        business_id: int,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Entry]:
        """List an account's entries ordered by date, then sequence (ascending)."""
        pass

    @abstractmethod
    def list_entries_by_transfer_group(self, business_id: int, transfer_group_id: str) -> list[Entry]:
        """List the entries sharing a transfer group id, ordered by sequence."""
        pass

    @abstractmethod
    def list_entries(
        self,
        business_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kinds: Optional[Sequence[EntryKind]] = None,
        include_cancelled: bool = False,
    ) -> list[Entry]:
        """List entries of a business with optional filters, ordered by date and sequence."""
        pass

    @abstractmethod
    def list_recent_entries(self, business_id: int, limit: int = 5) -> list[Entry]:
        """List the most recently appended entries (highest sequence first)."""
        pass

    @abstractmethod
    def count_entries(self, business_id: int) -> int:
        """Count all entries of a business, cancelled ones included."""
        pass

    @abstractmethod
    def update_entry(
        self,
        business_id: int,
        entry_id: int,
        amount: Optional[Decimal] = None,
        date: Optional[date] = None,
        note: Optional[str] = None,
        category_id: Optional[int] = None,
        book_id: Optional[int] = None,
        payment_mode: Optional[str] = None,
        update_category: bool = False,
    ) -> Entry:
        """Patch entry fields.

        Args:
            update_category: If True, update category_id even if it's None (to clear it)
        """
        pass

    @abstractmethod
    def set_entry_status(self, business_id: int, entry_id: int, status: EntryStatus) -> Entry:
        """Set an entry's status."""
        pass

    @abstractmethod
    def cancel_entry(self, business_id: int, entry_id: int) -> Entry:
        """Soft-cancel an entry. Cancelling a cancelled entry is a no-op."""
        pass

    @abstractmethod
    def link_entries(self, business_id: int, first_id: int, second_id: int) -> None:
        """Point two entries at each other through linked_entry_id."""
        pass

    # Team operations
    @abstractmethod
    def create_team_member(
        self,
        business_id: int,
        user_id: str,
        role: str,
        permissions: dict[str, bool],
        name: Optional[str] = None,
        email: Optional[str] = None,
        allowed_account_ids: Sequence[int] = (),
        allowed_book_ids: Sequence[int] = (),
        invited_by: Optional[str] = None,
    ) -> int:
        """Add a user to a business team. Returns team member ID."""
        pass

    @abstractmethod
    def get_team_member(self, business_id: int, member_id: int) -> Optional[TeamMember]:
        """Get team member by ID within a business."""
        pass

    @abstractmethod
    def get_team_member_by_user(self, business_id: int, user_id: str) -> Optional[TeamMember]:
        """Get the membership of a user in a business."""
        pass

    @abstractmethod
    def list_team_members(self, business_id: int) -> list[TeamMember]:
        """List team members of a business."""
        pass

    @abstractmethod
    def update_team_member(
        self,
        business_id: int,
        member_id: int,
        role: Optional[str] = None,
        permissions: Optional[dict[str, bool]] = None,
        allowed_account_ids: Optional[Sequence[int]] = None,
        allowed_book_ids: Optional[Sequence[int]] = None,
        is_active: Optional[bool] = None,
    ) -> TeamMember:
        """Patch team member fields."""
        pass

    @abstractmethod
    def delete_team_member(self, business_id: int, member_id: int) -> None:
        """Remove a team member."""
        pass

    # Audit operations
    @abstractmethod
    def record_audit_event(
        self,
        business_id: int,
        entity_type: str,
        entity_id: str,
        action: str,
        actor: Optional[str] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
    ) -> int:
        """Write an audit row. Returns audit event ID."""
        pass

    @abstractmethod
    def list_audit_events(
        self,
        business_id: int,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """List audit rows, oldest first."""
        pass
