"""Utility for resolving account names to IDs."""

from cashify.domain.account import AccountService
from cashify.domain.errors import NotFoundError, account_not_found


def resolve_account(account_service: AccountService, business_id: int, account: str | int) -> int:
    """Resolve an account name or ID within a business to its ID.

    Numeric strings are tried as IDs first; if no account of the business has
    that ID, the value is looked up as a name (so an account named "2024"
    still resolves).

    Raises:
        NotFoundError: If no account of the business matches
    """
    if isinstance(account, int):
        if account_service.get_account(business_id, account) is None:
            raise NotFoundError(account_not_found(account))
        return account

    account = account.strip()
    if account.isdigit():
        found = account_service.get_account(business_id, int(account))
        if found is not None:
            return found.id

    for acc in account_service.list_accounts(business_id, include_inactive=True):
        if acc.name == account:
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")
