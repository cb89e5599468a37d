"""Transfer commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit, resolve_account_or_exit
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.account import AccountService
from cashify.domain.entities import EntryStatus
from cashify.domain.errors import DomainError
from cashify.domain.guard import ConsistencyGuard
from cashify.domain.transfer import TransferCoordinator
from cashify.utils import parse_amount, parse_date


def _coordinator(ctx) -> TransferCoordinator:
    db = ctx.obj["db"]
    return TransferCoordinator(db, ConsistencyGuard(db, lock_timeout=ctx.obj["lock_timeout"]))


@click.group()
def transfer_group():
    """Move money between a business's accounts."""
    pass


@transfer_group.command("create")
@click.option("--from", "from_account", required=True, help="Source account name or ID")
@click.option("--to", "to_account", required=True, help="Target account name or ID")
@click.option("--amount", required=True, help="Positive amount, e.g. 200.00")
@click.option(
    "--date",
    default="today",
    show_default=True,
    help="Transfer date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--note", help="Note on both halves")
@click.option("--book", type=int, help="Book ID")
@click.pass_context
def create_transfer(
    ctx,
    from_account: str,
    to_account: str,
    amount: str,
    date: str,
    note: str | None,
    book: int | None,
):
    """Create a transfer: a transfer-out and a transfer-in, written together.

    Examples:
        cashify -b Shop transfer create --from Till --to Checking --amount 200
    """
    business_id = current_business_or_exit(ctx)
    accounts = AccountService(ctx.obj["db"])
    from_id = resolve_account_or_exit(ctx, accounts, business_id, from_account)
    to_id = resolve_account_or_exit(ctx, accounts, business_id, to_account)

    try:
        transfer_date = parse_date(date)
        transfer_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        group_id = _coordinator(ctx).create_transfer(
            business_id,
            from_id,
            to_id,
            transfer_amount,
            transfer_date,
            note=note or "",
            actor=ctx.obj.get("actor"),
            book_id=book,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created transfer {group_id}")


@transfer_group.command("show")
@click.argument("group_id")
@click.pass_context
def show_transfer(ctx, group_id: str):
    """Show both halves of a transfer."""
    business_id = current_business_or_exit(ctx)
    try:
        out_entry, in_entry = _coordinator(ctx).get_transfer(business_id, group_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transfer {group_id} ({out_entry.status.value})")
    click.echo(f"  Date: {out_entry.date}")
    click.echo(f"  Amount: {out_entry.amount:,.2f}")
    click.echo(f"  From account {out_entry.account_id} (entry {out_entry.id})")
    click.echo(f"  To account {in_entry.account_id} (entry {in_entry.id})")
    if out_entry.note:
        click.echo(f"  Note: {out_entry.note}")


@transfer_group.command("update")
@click.argument("group_id")
@click.option("--amount", help="New amount")
@click.option("--date", help="New date")
@click.option("--note", help="New note")
@click.pass_context
def update_transfer(ctx, group_id: str, amount: str | None, date: str | None, note: str | None):
    """Edit both halves of a transfer."""
    business_id = current_business_or_exit(ctx)
    try:
        new_amount = parse_amount(amount) if amount is not None else None
        new_date = parse_date(date) if date is not None else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        _coordinator(ctx).update_transfer(
            business_id,
            group_id,
            amount=new_amount,
            date=new_date,
            note=note,
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated transfer {group_id}")


@transfer_group.command("cancel")
@click.argument("group_id")
@click.pass_context
def cancel_transfer(ctx, group_id: str):
    """Cancel both halves of a transfer."""
    business_id = current_business_or_exit(ctx)
    try:
        _coordinator(ctx).cancel_transfer(business_id, group_id, actor=ctx.obj.get("actor"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Cancelled transfer {group_id}")


@transfer_group.command("status")
@click.argument("group_id")
@click.argument("status", type=click.Choice([s.value for s in EntryStatus], case_sensitive=False))
@click.pass_context
def set_transfer_status(ctx, group_id: str, status: str):
    """Move both halves of a transfer to STATUS."""
    business_id = current_business_or_exit(ctx)
    try:
        out_entry, _ = _coordinator(ctx).set_transfer_status(
            business_id, group_id, status.lower(), actor=ctx.obj.get("actor")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transfer {group_id} is {out_entry.status.value}")


@transfer_group.command("reverse")
@click.argument("group_id")
@click.option("--date", help="Date of the reversing transfer (defaults to today)")
@click.pass_context
def reverse_transfer(ctx, group_id: str, date: str | None):
    """Undo a reconciled transfer with a transfer in the other direction."""
    business_id = current_business_or_exit(ctx)
    try:
        reversal_date = parse_date(date) if date else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        new_group = _coordinator(ctx).reverse_transfer(
            business_id, group_id, actor=ctx.obj.get("actor"), reversal_date=reversal_date
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reversed transfer {group_id} with transfer {new_group}")


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfer_group, name="transfer")
