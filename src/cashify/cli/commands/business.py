"""Business management commands."""

import click

from cashify.cli.account_resolution import resolve_business
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.business import BusinessService
from cashify.domain.errors import DomainError


@click.group()
def business_group():
    """Manage businesses."""
    pass


@business_group.command("create")
@click.argument("name", metavar="BUSINESS_NAME")
@click.option("--currency", default="USD", show_default=True, help="Default currency for new accounts")
@click.option(
    "--enforce-non-negative",
    is_flag=True,
    help="Reject entries and transfers that take an account below zero",
)
@click.pass_context
def create_business(ctx, name: str, currency: str, enforce_non_negative: bool):
    """Create a new business.

    Examples:
        cashify business create "Corner Shop"
        cashify business create "Studio" --currency EUR --enforce-non-negative
    """
    service = BusinessService(ctx.obj["db"])
    try:
        business_id = service.create_business(
            name, currency=currency, enforce_non_negative=enforce_non_negative
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created business '{name}' (ID: {business_id})")


@business_group.command("list")
@click.pass_context
def list_businesses(ctx):
    """List all businesses."""
    businesses = BusinessService(ctx.obj["db"]).list_businesses()
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\nBusinesses:")
    click.echo("-" * 60)
    for biz in businesses:
        policy = "non-negative" if biz.enforce_non_negative else "negative allowed"
        click.echo(f"ID: {biz.id:3d} | {biz.name:20s} | {biz.currency} | {policy}")


@business_group.command("policy")
@click.argument("business", metavar="BUSINESS")
@click.option(
    "--enforce-non-negative/--allow-negative",
    required=True,
    help="Turn the non-negative balance policy on or off",
)
@click.pass_context
def set_policy(ctx, business: str, enforce_non_negative: bool):
    """Change the balance policy of a business.

    BUSINESS can be a business name or ID.
    """
    service = BusinessService(ctx.obj["db"])
    try:
        business_id = resolve_business(service, business)
        updated = service.set_non_negative_policy(
            business_id, enforce_non_negative, actor=ctx.obj.get("actor")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    state = "enforced" if updated.enforce_non_negative else "off"
    click.echo(f"Non-negative balance policy for '{updated.name}' is now {state}")


def register_commands(cli):
    """Register business commands with main CLI."""
    cli.add_command(business_group, name="business")
