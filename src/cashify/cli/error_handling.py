"""CLI error handling helpers."""

import click

from cashify.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render an error as ``Error [CODE]: message`` and exit with failure."""
    if isinstance(error, DomainError):
        click.echo(f"Error [{error.code}]: {error}", err=True)
        if error.retryable:
            click.echo("The account is busy; retry the command.", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
