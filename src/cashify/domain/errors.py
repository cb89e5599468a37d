"""Shared domain error messages and error types.

Every error carries a stable machine-readable ``code`` so callers (the CLI,
the request facade) can report failures without parsing messages.
"""

from decimal import Decimal
from typing import Any


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """

    code: str = "DOMAIN_ERROR"
    retryable: bool = False
    fatal: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Structured form used by the request facade."""
        return {"kind": self.code, "message": str(self), "retryable": self.retryable}


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    """Requested entity does not exist or belongs to another business."""

    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    code = "CONFLICT"


class ForbiddenError(DomainError):
    """Actor is not allowed to perform the operation in this business."""

    code = "FORBIDDEN"


class InvalidTransferError(ValidationError):
    """Transfer request violates transfer preconditions."""

    code = "INVALID_TRANSFER"


class CurrencyMismatchError(ValidationError):
    """Stated currency differs from the account currency."""

    code = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: account uses {expected}, got {actual}")


class InsufficientBalanceError(DomainError):
    """Mutation would drive a balance below zero while the policy forbids it."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, account_id: int, balance: Decimal, projected: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.projected = projected
        super().__init__(
            f"Insufficient balance on account {account_id}: "
            f"balance {balance} would become {projected}"
        )


class BusyError(DomainError):
    """Account lock could not be acquired in time. Safe to retry."""

    code = "BUSY"
    retryable = True

    def __init__(self, account_id: int, timeout: float):
        self.account_id = account_id
        self.timeout = timeout
        super().__init__(
            f"Account {account_id} is busy (lock not acquired within {timeout:g}s)"
        )


class InvalidStatusTransitionError(ValidationError):
    """Entry status change not permitted by the lifecycle."""

    code = "INVALID_STATUS_TRANSITION"


class ImmutableEntryError(ValidationError):
    """Reconciled entries cannot be edited or cancelled in place."""

    code = "IMMUTABLE_ENTRY"


class ConsistencyViolationError(DomainError):
    """Ledger invariant broken (orphaned transfer half, balance drift).

    Never expected in correct operation and never repaired automatically.
    """

    code = "CONSISTENCY_VIOLATION"
    fatal = True

    def __init__(self, message: str, **context: Any):
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["context"] = {key: str(value) for key, value in self.context.items()}
        return data


def business_not_found(business_id: int) -> str:
    """Return message for missing business."""
    return f"Business {business_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing entry."""
    return f"Entry {entry_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def book_not_found(book_id: int) -> str:
    return f"Book {book_id} not found"


def transfer_not_found(transfer_group_id: str) -> str:
    return f"Transfer {transfer_group_id} not found"


def account_inactive(account_id: int) -> str:
    return f"Account {account_id} is inactive"


def duplicate_name(kind: str, name: str) -> str:
    """Return message for a name already used within a business."""
    return f"{kind} with name '{name}' already exists"


def account_deactivate_blocked(account_id: int, balance: Decimal) -> str:
    """Return message when an account still holds money."""
    return (
        f"Cannot deactivate account {account_id}: balance is {balance}. "
        "Move or write off the balance first."
    )


def team_member_not_found(member: int | str) -> str:
    return f"Team member {member} not found"
