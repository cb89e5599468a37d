"""Category management commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.category import CategoryService
from cashify.domain.entities import CategoryKind
from cashify.domain.errors import DomainError

KIND_CHOICE = click.Choice([k.value for k in CategoryKind], case_sensitive=False)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option("--kind", type=KIND_CHOICE, help="Only income or only expense categories")
@click.pass_context
def list_categories(ctx, kind: str | None):
    """List categories grouped by kind."""
    business_id = current_business_or_exit(ctx)
    service = CategoryService(ctx.obj["db"])

    categories = service.list_categories(business_id, kind=kind.lower() if kind else None)
    if not categories:
        click.echo("No categories found.")
        return

    current_kind = None
    for cat in categories:
        if cat.kind != current_kind:
            current_kind = cat.kind
            click.echo(f"\n{current_kind.value.capitalize()}:")
        click.echo(f"  {cat.name} (ID: {cat.id})")


@category_group.command("create")
@click.argument("name")
@click.option("--kind", type=KIND_CHOICE, default="expense", show_default=True)
@click.pass_context
def create_category(ctx, name: str, kind: str):
    """Create a new category."""
    business_id = current_business_or_exit(ctx)
    service = CategoryService(ctx.obj["db"])

    try:
        category_id = service.create_category(business_id, name, kind.lower())
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {kind.lower()} category '{name}' (ID: {category_id})")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
