"""Entry management commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit, resolve_account_or_exit
from cashify.cli.date_filters import date_range_options, pop_period_flags, resolve_cli_date_range
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.account import AccountService
from cashify.domain.balance import BalanceCalculator
from cashify.domain.entities import Entry, EntryStatus, PaymentMode
from cashify.domain.entry import EntryService
from cashify.domain.errors import DomainError
from cashify.domain.guard import ConsistencyGuard
from cashify.utils import parse_amount, parse_date

PAYMENT_MODES = [m.value for m in PaymentMode if m != PaymentMode.TRANSFER]


def _entry_service(ctx) -> EntryService:
    db = ctx.obj["db"]
    return EntryService(db, ConsistencyGuard(db, lock_timeout=ctx.obj["lock_timeout"]))


def _parse_date_or_exit(ctx, value: str):
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


def _parse_amount_or_exit(ctx, value: str):
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)


def _format_entry(entry: Entry) -> str:
    line = (
        f"#{entry.id:<5d} {entry.date} {entry.kind.value:12s} "
        f"{entry.amount:>12,.2f}  {entry.status.value:10s}"
    )
    if entry.note:
        line += f" {entry.note}"
    return line


@click.group()
def entry_group():
    """Record and manage income and expense entries."""
    pass


def _add_entry(ctx, kind: str, **options):
    business_id = current_business_or_exit(ctx)
    service = _entry_service(ctx)
    account_id = resolve_account_or_exit(
        ctx, AccountService(ctx.obj["db"]), business_id, options["account"]
    )
    entry_date = _parse_date_or_exit(ctx, options["date"])
    amount = _parse_amount_or_exit(ctx, options["amount"])

    try:
        entry = service.create_entry(
            business_id,
            account_id,
            kind,
            amount,
            entry_date,
            note=options["note"] or "",
            category_id=options["category"],
            book_id=options["book"],
            payment_mode=options["payment_mode"],
            status=options["status"],
            attachments=options["attachment"],
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    balance = service.db.get_account(business_id, account_id).current_balance
    click.echo(f"Created {kind} entry {entry.id}")
    click.echo(f"  Date: {entry.date}")
    click.echo(f"  Amount: {entry.amount:,.2f}")
    click.echo(f"  Balance after: {balance:,.2f}")


def _entry_options(func):
    options = [
        click.option("--account", required=True, help="Account name or ID"),
        click.option("--amount", required=True, help="Positive amount, e.g. 123.45"),
        click.option(
            "--date",
            default="today",
            show_default=True,
            help="Entry date (YYYY-MM-DD or relative like 'today', 'yesterday')",
        ),
        click.option("--note", help="Free-text note"),
        click.option("--category", type=int, help="Category ID"),
        click.option("--book", type=int, help="Book ID"),
        click.option(
            "--payment-mode",
            type=click.Choice(PAYMENT_MODES, case_sensitive=False),
            default=PaymentMode.CASH.value,
            show_default=True,
        ),
        click.option(
            "--status",
            type=click.Choice([EntryStatus.PENDING.value, EntryStatus.CLEARED.value]),
            default=EntryStatus.CLEARED.value,
            show_default=True,
        ),
        click.option("--attachment", multiple=True, help="Attachment reference (repeatable)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@entry_group.command("income")
@_entry_options
@click.pass_context
def add_income(ctx, **options):
    """Record money coming into an account.

    Examples:
        cashify -b Shop entry income --account Till --amount 250 --note "Sales"
    """
    _add_entry(ctx, "income", **options)


@entry_group.command("expense")
@_entry_options
@click.pass_context
def add_expense(ctx, **options):
    """Record money leaving an account.

    Examples:
        cashify -b Shop entry expense --account Till --amount 40.50 --date yesterday
    """
    _add_entry(ctx, "expense", **options)


@entry_group.command("list")
@click.option("--account", help="Account name or ID; shows running balances")
@click.option("--include-cancelled", is_flag=True, help="Show cancelled entries too")
@date_range_options
@click.pass_context
def list_entries(ctx, account: str | None, include_cancelled: bool, start_date, end_date, **period_kwargs):
    """List entries in ledger order (date, then entry sequence).

    With --account, each line shows the account balance right after the entry.
    """
    business_id = current_business_or_exit(ctx)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=pop_period_flags(period_kwargs),
    )
    db = ctx.obj["db"]

    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), business_id, account)
        try:
            rows = BalanceCalculator(db).running_balances(
                business_id,
                account_id,
                start_date=start,
                end_date=end,
                include_cancelled=include_cancelled,
            )
        except DomainError as e:
            handle_domain_error(ctx, e)
        if not rows:
            click.echo("No entries found.")
            return
        for row in rows:
            click.echo(f"{_format_entry(row.entry)}  -> {row.balance_after:,.2f}")
        return

    entries = _entry_service(ctx).list_entries(
        business_id, start_date=start, end_date=end, include_cancelled=include_cancelled
    )
    if not entries:
        click.echo("No entries found.")
        return
    for entry in entries:
        click.echo(f"{_format_entry(entry)}  [account {entry.account_id}]")


@entry_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show one entry in full."""
    business_id = current_business_or_exit(ctx)
    entry = _entry_service(ctx).get_entry(business_id, entry_id)
    if entry is None:
        click.echo(f"Error [NOT_FOUND]: Entry {entry_id} not found", err=True)
        ctx.exit(1)

    click.echo(_format_entry(entry))
    click.echo(f"  Account: {entry.account_id}")
    click.echo(f"  Payment mode: {entry.payment_mode.value}")
    if entry.category_id is not None:
        click.echo(f"  Category: {entry.category_id}")
    if entry.book_id is not None:
        click.echo(f"  Book: {entry.book_id}")
    if entry.transfer_group_id:
        click.echo(f"  Transfer: {entry.transfer_group_id} (linked entry {entry.linked_entry_id})")
    if entry.reverses_entry_id is not None:
        click.echo(f"  Reverses entry: {entry.reverses_entry_id}")
    for ref in entry.attachments:
        click.echo(f"  Attachment: {ref}")


@entry_group.command("update")
@click.argument("entry_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--date", help="New date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--note", help="New note")
@click.option("--category", help="Category ID, or empty string to clear")
@click.option("--book", type=int, help="Book ID")
@click.option("--payment-mode", type=click.Choice(PAYMENT_MODES, case_sensitive=False))
@click.pass_context
def update_entry(
    ctx,
    entry_id: int,
    amount: str | None,
    date: str | None,
    note: str | None,
    category: str | None,
    book: int | None,
    payment_mode: str | None,
) -> None:
    """Edit an entry in place.

    Updates only the fields that are provided. Editing either half of a
    transfer changes both halves. Reconciled entries cannot be edited; use
    'entry reverse' instead.

    Examples:
        cashify -b Shop entry update 12 --amount 75.00
        cashify -b Shop entry update 12 --category ""  # Clear category
    """
    business_id = current_business_or_exit(ctx)
    service = _entry_service(ctx)

    category_id = None
    clear_category = False
    if category is not None:
        if category == "":
            clear_category = True
        elif category.isdigit():
            category_id = int(category)
        else:
            click.echo(f"Error: Category must be an ID, got '{category}'", err=True)
            ctx.exit(1)

    try:
        service.update_entry(
            business_id,
            entry_id,
            amount=_parse_amount_or_exit(ctx, amount) if amount is not None else None,
            date=_parse_date_or_exit(ctx, date) if date is not None else None,
            note=note,
            category_id=category_id,
            clear_category=clear_category,
            payment_mode=payment_mode,
            book_id=book,
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated entry {entry_id}")


@entry_group.command("cancel")
@click.argument("entry_id", type=int)
@click.pass_context
def cancel_entry(ctx, entry_id: int) -> None:
    """Cancel an entry (it stays in the history with no balance effect).

    Cancelling either half of a transfer cancels the whole transfer.
    """
    business_id = current_business_or_exit(ctx)
    try:
        entry = _entry_service(ctx).cancel_entry(business_id, entry_id, actor=ctx.obj.get("actor"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Entry {entry.id} is {entry.status.value}")


@entry_group.command("status")
@click.argument("entry_id", type=int)
@click.argument("status", type=click.Choice([s.value for s in EntryStatus], case_sensitive=False))
@click.pass_context
def set_status(ctx, entry_id: int, status: str) -> None:
    """Move an entry to STATUS (pending -> cleared -> reconciled, or cancelled)."""
    business_id = current_business_or_exit(ctx)
    try:
        entry = _entry_service(ctx).set_status(
            business_id, entry_id, status.lower(), actor=ctx.obj.get("actor")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Entry {entry.id} is {entry.status.value}")


@entry_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--date", help="Date of the reversing entry (defaults to today)")
@click.pass_context
def reverse_entry(ctx, entry_id: int, date: str | None) -> None:
    """Post the opposite of a reconciled entry."""
    business_id = current_business_or_exit(ctx)
    reversal_date = _parse_date_or_exit(ctx, date) if date else None
    try:
        reversal = _entry_service(ctx).reverse_entry(
            business_id, entry_id, actor=ctx.obj.get("actor"), reversal_date=reversal_date
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reversed entry {entry_id} with entry {reversal.id}")


def register_commands(cli):
    """Register entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
