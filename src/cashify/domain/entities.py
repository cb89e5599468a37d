"""Domain model entities for cashify.

These are pure data classes representing bookkeeping concepts, independent of
database schema. Services and the request facade only ever see these types;
the SQLAlchemy rows stay inside the database package.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountKind(str, Enum):
    """Kind of money account a business keeps."""

    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    INVESTMENT = "investment"


class EntryKind(str, Enum):
    """Kind of ledger entry. The sign of an entry is implied by its kind."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_OUT = "transfer-out"
    TRANSFER_IN = "transfer-in"

    @property
    def is_transfer(self) -> bool:
        return self in (EntryKind.TRANSFER_OUT, EntryKind.TRANSFER_IN)

    @property
    def is_credit(self) -> bool:
        """True when the entry adds to its account's balance."""
        return self in (EntryKind.INCOME, EntryKind.TRANSFER_IN)


class EntryStatus(str, Enum):
    """Entry lifecycle status."""

    PENDING = "pending"
    CLEARED = "cleared"
    RECONCILED = "reconciled"
    CANCELLED = "cancelled"


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CARD = "card"
    UPI = "upi"
    OTHER = "other"
    TRANSFER = "transfer"


class CategoryKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class BookType(str, Enum):
    GENERAL = "general"
    PROJECT = "project"
    EXPENSE = "expense"
    PAYABLE = "payable"
    RECEIVABLE = "receivable"


class TeamRole(str, Enum):
    """Role of a team member within a business."""

    OWNER = "owner"
    PARTNER = "partner"
    STAFF = "staff"


class Permission(str, Enum):
    """Permission flag names; each value is a ``TeamPermissions`` field."""

    CREATE_TRANSACTIONS = "can_create_transactions"
    EDIT_TRANSACTIONS = "can_edit_transactions"
    DELETE_TRANSACTIONS = "can_delete_transactions"
    INVITE_MEMBERS = "can_invite_members"
    EDIT_MEMBERS = "can_edit_members"
    REMOVE_MEMBERS = "can_remove_members"


@dataclass(frozen=True)
class Business:
    """Tenant owning accounts, categories, books and entries."""

    id: int
    name: str
    currency: str
    enforce_non_negative: bool
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Money account domain entity.

    ``current_balance`` is a cached snapshot; the ledger replay is the source
    of truth.
    """

    id: int
    business_id: int
    name: str
    kind: AccountKind
    currency: str
    initial_balance: Decimal
    current_balance: Decimal
    is_active: bool
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Category:
    """Income or expense category domain entity."""

    id: int
    business_id: int
    name: str
    kind: CategoryKind
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Book:
    """Book grouping entries within a business."""

    id: int
    business_id: int
    name: str
    book_type: BookType
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Entry:
    """Ledger entry domain entity (one record affecting one account)."""

    id: int
    business_id: int
    account_id: int
    kind: EntryKind
    amount: Decimal
    date: date
    status: EntryStatus
    sequence: int
    note: Optional[str]
    payment_mode: PaymentMode
    category_id: Optional[int]
    book_id: Optional[int]
    linked_entry_id: Optional[int]
    transfer_group_id: Optional[str]
    reverses_entry_id: Optional[int]
    attachments: tuple[str, ...]
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def is_cancelled(self) -> bool:
        return self.status == EntryStatus.CANCELLED


@dataclass(frozen=True)
class RunningBalance:
    """An entry paired with its account's balance right after it."""

    entry: Entry
    balance_after: Decimal


@dataclass(frozen=True)
class BalanceCheck:
    """Result of comparing an account's cached balance with a full replay."""

    account_id: int
    cached_balance: Decimal
    replayed_balance: Decimal
    entry_count: int

    @property
    def drift(self) -> Decimal:
        return self.cached_balance - self.replayed_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


@dataclass(frozen=True)
class AuditEvent:
    """Audit log row describing a committed change."""

    id: int
    business_id: int
    entity_type: str
    entity_id: str
    action: str
    actor: Optional[str]
    old_values: Optional[dict]
    new_values: Optional[dict]
    created_at: datetime


@dataclass(frozen=True)
class DashboardStats:
    """Business dashboard figures. Money totals are keyed by account currency."""

    business_id: int
    income_by_currency: dict[str, Decimal]
    expenses_by_currency: dict[str, Decimal]
    net_by_currency: dict[str, Decimal]
    balances_by_currency: dict[str, Decimal]
    active_account_count: int
    entry_count: int
    recent_entries: tuple[Entry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TeamPermissions:
    """What a team member may do. Owners always get every permission."""

    can_create_transactions: bool = False
    can_edit_transactions: bool = False
    can_delete_transactions: bool = False
    can_invite_members: bool = False
    can_edit_members: bool = False
    can_remove_members: bool = False

    @classmethod
    def for_role(cls, role: TeamRole) -> "TeamPermissions":
        """Default permissions of a role."""
        role = TeamRole(role)
        if role == TeamRole.OWNER:
            return cls(**{p.value: True for p in Permission})
        if role == TeamRole.PARTNER:
            return cls(
                can_create_transactions=True,
                can_edit_transactions=True,
                can_delete_transactions=True,
                can_invite_members=True,
            )
        return cls(can_create_transactions=True)

    def allows(self, permission: Permission) -> bool:
        return getattr(self, Permission(permission).value)

    def to_dict(self) -> dict[str, bool]:
        return {p.value: self.allows(p) for p in Permission}


@dataclass(frozen=True)
class TeamMember:
    """A user's membership in a business.

    Empty ``allowed_account_ids`` or ``allowed_book_ids`` mean no restriction.
    """

    id: int
    business_id: int
    user_id: str
    name: Optional[str]
    email: Optional[str]
    role: TeamRole
    is_active: bool
    permissions: TeamPermissions
    allowed_account_ids: tuple[int, ...]
    allowed_book_ids: tuple[int, ...]
    invited_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def is_owner(self) -> bool:
        return self.role == TeamRole.OWNER

    def can_use_account(self, account_id: int) -> bool:
        return self.is_owner or not self.allowed_account_ids or account_id in self.allowed_account_ids

    def can_use_book(self, book_id: int) -> bool:
        return self.is_owner or not self.allowed_book_ids or book_id in self.allowed_book_ids
