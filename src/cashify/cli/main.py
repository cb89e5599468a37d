"""Main CLI entry point."""

import click

from cashify.config import Settings
from cashify.database.factories import create_database
from cashify.logging_config import configure_logging

# Import and register all commands at module level
from cashify.cli.commands import (
    account,
    audit,
    book,
    business,
    category,
    entry,
    summary,
    team,
    transfer,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides CASHIFY_DB_PATH environment variable)",
    envvar="CASHIFY_DB_PATH",
)
@click.option(
    "--business",
    "-b",
    help="Business name or ID the command works on",
    envvar="CASHIFY_BUSINESS",
)
@click.option("--actor", help="User recorded in the audit log", envvar="CASHIFY_ACTOR")
@click.option(
    "--lock-timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait for an account lock (overrides CASHIFY_LOCK_TIMEOUT)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for the cashify logger (overrides CASHIFY_LOG_LEVEL)",
)
@click.pass_context
def cli(
    ctx,
    db_path: str | None,
    business: str | None,
    actor: str | None,
    lock_timeout: float | None,
    log_level: str | None,
):
    """Cashify - Small-business cash book.

    Record income, expenses and transfers between a business's accounts,
    with balances that always match the entry history.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = Settings.from_env(database_path=db_path)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        configure_logging(level=(log_level or settings.log_level).upper(), fmt=settings.log_format)

        db = create_database(settings)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["business"] = business
        ctx.obj["actor"] = actor
        ctx.obj["lock_timeout"] = lock_timeout or settings.lock_timeout


# Register all commands
business.register_commands(cli)
account.register_commands(cli)
category.register_commands(cli)
book.register_commands(cli)
entry.register_commands(cli)
transfer.register_commands(cli)
summary.register_commands(cli)
audit.register_commands(cli)
team.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
