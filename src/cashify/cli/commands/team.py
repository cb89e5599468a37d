"""Team member commands."""

import click

from cashify.cli.account_resolution import current_business_or_exit
from cashify.cli.error_handling import handle_domain_error
from cashify.domain.entities import Permission, TeamRole
from cashify.domain.errors import DomainError
from cashify.domain.team import TeamService

ROLE_CHOICES = click.Choice([r.value for r in TeamRole], case_sensitive=False)
PERMISSION_CHOICES = click.Choice([p.value for p in Permission], case_sensitive=False)


def _flags(grant: tuple[str, ...], revoke: tuple[str, ...]) -> dict[str, bool] | None:
    flags = {name.lower(): True for name in grant}
    flags.update({name.lower(): False for name in revoke})
    return flags or None


@click.group()
def team_group():
    """Manage team members."""
    pass


@team_group.command("add")
@click.argument("user_id")
@click.option("--role", type=ROLE_CHOICES, default=TeamRole.STAFF.value, show_default=True)
@click.option("--name", help="Display name")
@click.option("--email", help="Contact email")
@click.option("--grant", multiple=True, type=PERMISSION_CHOICES, help="Permission to add")
@click.option("--revoke", multiple=True, type=PERMISSION_CHOICES, help="Permission to drop")
@click.option("--account", "accounts", multiple=True, type=int, help="Restrict to this account ID")
@click.option("--book", "books", multiple=True, type=int, help="Restrict to this book ID")
@click.pass_context
def add_member(
    ctx,
    user_id: str,
    role: str,
    name: str | None,
    email: str | None,
    grant: tuple[str, ...],
    revoke: tuple[str, ...],
    accounts: tuple[int, ...],
    books: tuple[int, ...],
):
    """Add USER_ID to the business team."""
    business_id = current_business_or_exit(ctx)
    service = TeamService(ctx.obj["db"])

    try:
        member_id = service.add_member(
            business_id,
            user_id,
            role=role.lower(),
            name=name,
            email=email,
            permissions=_flags(grant, revoke),
            allowed_account_ids=accounts,
            allowed_book_ids=books,
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added {role.lower()} '{user_id}' (ID: {member_id})")


@team_group.command("list")
@click.pass_context
def list_members(ctx):
    """List team members."""
    business_id = current_business_or_exit(ctx)
    try:
        members = TeamService(ctx.obj["db"]).list_members(business_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not members:
        click.echo("No team members. Every user may act on this business.")
        return

    click.echo("\nTeam:")
    click.echo("-" * 70)
    for member in members:
        granted = [p.value for p in Permission if member.permissions.allows(p)]
        line = f"ID: {member.id:3d} | {member.user_id:15s} | {member.role.value:7s}"
        if not member.is_active:
            line += " | inactive"
        line += f" | {', '.join(granted) or 'no permissions'}"
        if member.allowed_account_ids and not member.is_owner:
            line += f" | accounts {', '.join(str(a) for a in member.allowed_account_ids)}"
        click.echo(line)


@team_group.command("update")
@click.argument("member_id", type=int)
@click.option("--role", type=ROLE_CHOICES, help="New role (resets permissions)")
@click.option("--grant", multiple=True, type=PERMISSION_CHOICES, help="Permission to add")
@click.option("--revoke", multiple=True, type=PERMISSION_CHOICES, help="Permission to drop")
@click.option("--account", "accounts", multiple=True, type=int, help="Restrict to this account ID")
@click.option("--all-accounts", is_flag=True, help="Lift the account restriction")
@click.option("--active/--inactive", default=None, help="Enable or disable the member")
@click.pass_context
def update_member(
    ctx,
    member_id: int,
    role: str | None,
    grant: tuple[str, ...],
    revoke: tuple[str, ...],
    accounts: tuple[int, ...],
    all_accounts: bool,
    active: bool | None,
):
    """Change a team member's role, permissions or account access."""
    business_id = current_business_or_exit(ctx)
    allowed = () if all_accounts else (accounts or None)

    try:
        member = TeamService(ctx.obj["db"]).update_member(
            business_id,
            member_id,
            role=role.lower() if role else None,
            permissions=_flags(grant, revoke),
            allowed_account_ids=allowed,
            is_active=active,
            actor=ctx.obj.get("actor"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated team member '{member.user_id}' ({member.role.value})")


@team_group.command("remove")
@click.argument("member_id", type=int)
@click.pass_context
def remove_member(ctx, member_id: int):
    """Remove a member from the team."""
    business_id = current_business_or_exit(ctx)
    try:
        TeamService(ctx.obj["db"]).remove_member(
            business_id, member_id, actor=ctx.obj.get("actor")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed team member {member_id}")


def register_commands(cli):
    """Register team commands with main CLI."""
    cli.add_command(team_group, name="team")
