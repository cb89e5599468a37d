"""Account domain service."""

from decimal import Decimal
from typing import Optional

from cashify.database.base import Database
from cashify.domain.business import BusinessService
from cashify.domain.entities import Account, AccountKind
from cashify.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_deactivate_blocked,
    account_not_found,
    duplicate_name,
)
from cashify.domain.guard import ConsistencyGuard
from cashify.domain.money import normalize_currency, validate_balance
from cashify.logging_config import get_logger

logger = get_logger("account")


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database, guard: Optional[ConsistencyGuard] = None):
        """Initialize account service.

        Args:
            db: Database instance
            guard: Consistency guard; defaults to one sharing the database's locks
        """
        self.db = db
        self.guard = guard or ConsistencyGuard(db)
        self.businesses = BusinessService(db)

    def create_account(
        self,
        business_id: int,
        name: str,
        kind: AccountKind | str = AccountKind.CASH,
        currency: Optional[str] = None,
        initial_balance: Decimal | str | int = Decimal("0"),
        actor: Optional[str] = None,
    ) -> int:
        """Create a new account.

        Args:
            business_id: Owning business
            name: Account name, unique within the business
            kind: cash, bank, credit or investment
            currency: Account currency (defaults to the business currency)
            initial_balance: Opening balance; may be negative for credit accounts
            actor: User creating the account

        Returns:
            Account ID

        Raises:
            NotFoundError: If the business does not exist
            ValidationError: If kind, currency or balance is invalid
            ConflictError: If the name already exists in the business
        """
        business = self.businesses.require_business(business_id)
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        name = name.strip()
        try:
            kind = AccountKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid account kind '{kind}'")
        currency = normalize_currency(currency or business.currency)
        opening = validate_balance(initial_balance)

        # Check if account with same name exists
        for acc in self.db.list_accounts(business_id, include_inactive=True):
            if acc.name == name:
                raise ConflictError(duplicate_name("Account", name))

        with self.db.transaction():
            account_id = self.db.create_account(
                business_id=business_id,
                name=name,
                kind=kind.value,
                currency=currency,
                initial_balance=opening,
                created_by=actor,
            )
            self.db.record_audit_event(
                business_id,
                "account",
                str(account_id),
                "create",
                actor=actor,
                new_values={
                    "name": name,
                    "kind": kind.value,
                    "currency": currency,
                    "initial_balance": str(opening),
                },
            )
        logger.info(
            "account_created",
            extra={"business_id": business_id, "account_id": account_id, "currency": currency},
        )
        return account_id

    def get_account(self, business_id: int, account_id: int) -> Optional[Account]:
        """Get account by ID.

        Returns:
            Account entity or None if not found in the business
        """
        return self.db.get_account(business_id, account_id)

    def require_account(self, business_id: int, account_id: int) -> Account:
        """Get account by ID or raise NotFoundError."""
        account = self.db.get_account(business_id, account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self, business_id: int, include_inactive: bool = False) -> list[Account]:
        return self.db.list_accounts(business_id, include_inactive=include_inactive)

    def rename_account(
        self, business_id: int, account_id: int, name: str, actor: Optional[str] = None
    ) -> Account:
        """Rename an account.

        Raises:
            NotFoundError: If the account is missing
            ConflictError: If the name is used by another account of the business
        """
        current = self.require_account(business_id, account_id)
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        name = name.strip()

        # Check for duplicate names (excluding current account)
        for acc in self.db.list_accounts(business_id, include_inactive=True):
            if acc.id != account_id and acc.name == name:
                raise ConflictError(duplicate_name("Account", name))

        with self.db.transaction():
            account = self.db.update_account(business_id, account_id, name=name)
            self.db.record_audit_event(
                business_id,
                "account",
                str(account_id),
                "update",
                actor=actor,
                old_values={"name": current.name},
                new_values={"name": name},
            )
        return account

    def deactivate_account(
        self, business_id: int, account_id: int, actor: Optional[str] = None
    ) -> Account:
        """Deactivate an account. Accounts still holding money stay active.

        Raises:
            ValidationError: If the cached balance is not zero
        """
        with self.guard.hold(account_id):
            with self.db.transaction():
                account = self.require_account(business_id, account_id)
                if account.current_balance != 0:
                    raise ValidationError(
                        account_deactivate_blocked(account_id, account.current_balance)
                    )
                updated = self.db.update_account(business_id, account_id, is_active=False)
                self.db.record_audit_event(
                    business_id,
                    "account",
                    str(account_id),
                    "update",
                    actor=actor,
                    old_values={"is_active": account.is_active},
                    new_values={"is_active": False},
                )
        logger.info(
            "account_deactivated", extra={"business_id": business_id, "account_id": account_id}
        )
        return updated

    def activate_account(
        self, business_id: int, account_id: int, actor: Optional[str] = None
    ) -> Account:
        with self.db.transaction():
            account = self.require_account(business_id, account_id)
            updated = self.db.update_account(business_id, account_id, is_active=True)
            self.db.record_audit_event(
                business_id,
                "account",
                str(account_id),
                "update",
                actor=actor,
                old_values={"is_active": account.is_active},
                new_values={"is_active": True},
            )
        return updated
