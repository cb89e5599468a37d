"""Summary commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit
from cashify.cli.date_filters import date_range_options, pop_period_flags, resolve_cli_date_range
from cashify.domain.summary import SummaryService


@click.command("summary")
@date_range_options
@click.pass_context
def show_summary(ctx, start_date: str | None, end_date: str | None, **period_kwargs):
    """Show income, expenses, balances and recent entries.

    Transfers move money between the business's own accounts and are not
    counted as income or expense.

    Examples:
        cashify -b "Corner Shop" summary --this-month
        cashify -b "Corner Shop" summary --start-date 2024-01-01 --end-date 2024-03-31
    """
    business_id = current_business_or_exit(ctx)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=pop_period_flags(period_kwargs),
    )

    stats = SummaryService(ctx.obj["db"]).dashboard(business_id, start_date=start, end_date=end)

    if start or end:
        click.echo(f"Period: {start or '...'} to {end or '...'}")
    click.echo(f"{'Currency':8s} {'Income':>14s} {'Expenses':>14s} {'Net':>14s}")
    if not stats.net_by_currency:
        click.echo("  no income or expenses")
    for currency, net in stats.net_by_currency.items():
        click.echo(
            f"{currency:8s} {stats.income_by_currency[currency]:>14,.2f} "
            f"{stats.expenses_by_currency[currency]:>14,.2f} {net:>14,.2f}"
        )

    click.echo(f"\nBalances ({stats.active_account_count} active accounts):")
    if not stats.balances_by_currency:
        click.echo("  none")
    for currency, total in stats.balances_by_currency.items():
        click.echo(f"  {currency}: {total:,.2f}")

    click.echo(f"\nRecent entries ({stats.entry_count} total):")
    for e in stats.recent_entries:
        click.echo(
            f"  #{e.id:<5d} {e.date} {e.kind.value:12s} {e.amount:>12,.2f} {e.status.value}"
        )


def register_commands(cli):
    """Register summary command with main CLI."""
    cli.add_command(show_summary)
