"""CLI helpers for business and account resolution."""

from __future__ import annotations

import click

from cashify.domain.account import AccountService
from cashify.domain.business import BusinessService
from cashify.domain.errors import NotFoundError
from cashify.cli.error_handling import handle_domain_error
from cashify.utils import resolve_account


def resolve_business(business_service: BusinessService, business: str | int) -> int:
    """Resolve a business name or ID to its ID.

    Raises:
        NotFoundError: If no business matches
    """
    text = str(business).strip()
    if text.isdigit() and business_service.get_business(int(text)) is not None:
        return int(text)
    for candidate in business_service.list_businesses():
        if candidate.name == text:
            return candidate.id
    raise NotFoundError(f"Business '{text}' not found")


def current_business_or_exit(ctx: click.Context) -> int:
    """Return the business selected with the global --business option.

    Keeps error messaging and exit behavior consistent across commands.
    """
    business = ctx.obj.get("business")
    if not business:
        click.echo(
            "Error: No business selected. Pass --business or set CASHIFY_BUSINESS.", err=True
        )
        ctx.exit(1)
    try:
        return resolve_business(BusinessService(ctx.obj["db"]), business)
    except NotFoundError as exc:
        handle_domain_error(ctx, exc)


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, business_id: int, account: str | int
) -> int:
    """Resolve account name or ID within the business, or exit with a CLI error."""
    try:
        return resolve_account(account_service, business_id, account)
    except NotFoundError as exc:
        handle_domain_error(ctx, exc)
