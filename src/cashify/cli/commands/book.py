"""Book management commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.book import BookService
from cashify.domain.entities import BookType
from cashify.domain.errors import DomainError


@click.group()
def book_group():
    """Manage books."""
    pass


@book_group.command("create")
@click.argument("name")
@click.option(
    "--type",
    "book_type",
    type=click.Choice([t.value for t in BookType], case_sensitive=False),
    default=BookType.GENERAL.value,
    show_default=True,
)
@click.option("--description", help="What the book is for")
@click.pass_context
def create_book(ctx, name: str, book_type: str, description: str | None):
    """Create a book for grouping entries."""
    business_id = current_business_or_exit(ctx)
    service = BookService(ctx.obj["db"])

    try:
        book_id = service.create_book(
            business_id, name, book_type=book_type.lower(), description=description
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created book '{name}' (ID: {book_id})")


@book_group.command("list")
@click.pass_context
def list_books(ctx):
    """List books."""
    business_id = current_business_or_exit(ctx)
    books = BookService(ctx.obj["db"]).list_books(business_id)
    if not books:
        click.echo("No books found.")
        return

    click.echo("\nBooks:")
    click.echo("-" * 60)
    for book in books:
        line = f"ID: {book.id:3d} | {book.name:20s} | {book.book_type.value}"
        if book.description:
            line += f" | {book.description}"
        click.echo(line)


def register_commands(cli):
    """Register book commands with main CLI."""
    cli.add_command(book_group, name="book")
