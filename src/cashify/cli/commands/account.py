"""Account management commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit, resolve_account_or_exit
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.account import AccountService
from cashify.domain.balance import BalanceCalculator
from cashify.domain.entities import AccountKind
from cashify.domain.errors import DomainError
from cashify.domain.guard import ConsistencyGuard
from cashify.utils import parse_amount


def _services(ctx) -> tuple[AccountService, BalanceCalculator]:
    db = ctx.obj["db"]
    guard = ConsistencyGuard(db, lock_timeout=ctx.obj["lock_timeout"])
    return AccountService(db, guard), BalanceCalculator(db, guard)


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in AccountKind], case_sensitive=False),
    default=AccountKind.CASH.value,
    show_default=True,
)
@click.option("--currency", help="Account currency (defaults to the business currency)")
@click.option("--initial-balance", default="0", help="Opening balance (may be negative for credit)")
@click.pass_context
def create_account(ctx, name: str, kind: str, currency: str | None, initial_balance: str):
    """Create a new account.

    Examples:
        cashify -b "Corner Shop" account create "Till"
        cashify -b "Corner Shop" account create "Checking" --kind bank --initial-balance 1000
    """
    business_id = current_business_or_exit(ctx)
    service, _ = _services(ctx)
    try:
        opening = parse_amount(initial_balance)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            business_id,
            name,
            kind=kind.lower(),
            currency=currency,
            initial_balance=opening,
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account '{name}' (ID: {account_id})")


@account_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated accounts")
@click.pass_context
def list_accounts(ctx, include_inactive: bool):
    """List accounts with their cached balances."""
    business_id = current_business_or_exit(ctx)
    service, _ = _services(ctx)

    accounts = service.list_accounts(business_id, include_inactive=include_inactive)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.kind.value:10s} | "
            f"{acc.current_balance:>14,.2f} {acc.currency}{status}"
        )


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.pass_context
def rename_account(ctx, account: str, new_name: str) -> None:
    """Rename an account.

    ACCOUNT can be an account name or ID.
    """
    business_id = current_business_or_exit(ctx)
    service, _ = _services(ctx)
    account_id = resolve_account_or_exit(ctx, service, business_id, account)

    try:
        service.rename_account(business_id, account_id, new_name, actor=ctx.obj.get("actor"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Renamed account to '{new_name}'")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Deactivate an account.

    Only accounts with a zero balance can be deactivated. Their history is
    kept; accounts are never deleted.
    """
    business_id = current_business_or_exit(ctx)
    service, _ = _services(ctx)
    account_id = resolve_account_or_exit(ctx, service, business_id, account)

    try:
        deactivated = service.deactivate_account(
            business_id, account_id, actor=ctx.obj.get("actor")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated account '{deactivated.name}'")


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str) -> None:
    """Reactivate a deactivated account."""
    business_id = current_business_or_exit(ctx)
    service, _ = _services(ctx)
    account_id = resolve_account_or_exit(ctx, service, business_id, account)

    try:
        activated = service.activate_account(business_id, account_id, actor=ctx.obj.get("actor"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Activated account '{activated.name}'")


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_balance(ctx, account: str) -> None:
    """Show the balance replayed from the account's entries."""
    business_id = current_business_or_exit(ctx)
    service, calculator = _services(ctx)
    account_id = resolve_account_or_exit(ctx, service, business_id, account)

    try:
        balance = calculator.current_balance(business_id, account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    acc = service.require_account(business_id, account_id)
    click.echo(f"{acc.name}: {balance:,.2f} {acc.currency}")


@account_group.command("verify")
@click.argument("account", required=False, metavar="[ACCOUNT]")
@click.pass_context
def verify_accounts(ctx, account: str | None) -> None:
    """Compare cached balances with a full replay.

    Checks every account of the business when ACCOUNT is omitted. Exits with
    status 1 if any account has drifted; nothing is changed.
    """
    business_id = current_business_or_exit(ctx)
    service, calculator = _services(ctx)
    if account is not None:
        account_ids = [resolve_account_or_exit(ctx, service, business_id, account)]
    else:
        account_ids = [a.id for a in service.list_accounts(business_id, include_inactive=True)]

    drifted = 0
    for account_id in account_ids:
        check = calculator.check_balance(business_id, account_id)
        if check.is_consistent:
            click.echo(f"Account {account_id}: OK ({check.cached_balance:,.2f})")
        else:
            drifted += 1
            click.echo(
                f"Account {account_id}: DRIFT cached {check.cached_balance:,.2f}, "
                f"replayed {check.replayed_balance:,.2f}"
            )

    if drifted:
        try:
            # Surfaces the first drift as a consistency error and logs it
            for account_id in account_ids:
                calculator.verify_balance(business_id, account_id)
        except DomainError as e:
            handle_domain_error(ctx, e)


@account_group.command("rebuild")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def rebuild_balance(ctx, account: str) -> None:
    """Overwrite the cached balance with the replayed balance (explicit repair)."""
    business_id = current_business_or_exit(ctx)
    service, calculator = _services(ctx)
    account_id = resolve_account_or_exit(ctx, service, business_id, account)

    try:
        check = calculator.rebuild_balance(business_id, account_id, actor=ctx.obj.get("actor"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    if check.is_consistent:
        click.echo(f"Account {account_id} was consistent ({check.replayed_balance:,.2f})")
    else:
        click.echo(
            f"Repaired account {account_id}: {check.cached_balance:,.2f} -> "
            f"{check.replayed_balance:,.2f}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
