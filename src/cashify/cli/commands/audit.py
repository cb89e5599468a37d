"""Audit log commands."""

import json

import click

from cashify.cli.account_resolution import current_business_or_exit
from cashify.domain.audit import AuditService


@click.group()
def audit_group():
    """Inspect the audit log."""
    pass


@audit_group.command("list")
@click.option(
    "--entity-type",
    type=click.Choice(["business", "account", "entry", "transfer"], case_sensitive=False),
    help="Only events about this kind of entity",
)
@click.option("--entity-id", help="Only events about this entity (entry ID, transfer group ID...)")
@click.pass_context
def list_events(ctx, entity_type: str | None, entity_id: str | None):
    """List audit events, oldest first."""
    business_id = current_business_or_exit(ctx)
    events = AuditService(ctx.obj["db"]).list_events(
        business_id,
        entity_type=entity_type.lower() if entity_type else None,
        entity_id=entity_id,
    )
    if not events:
        click.echo("No audit events found.")
        return

    for event in events:
        who = event.actor or "-"
        click.echo(
            f"{event.created_at:%Y-%m-%d %H:%M:%S} | {who:12s} | "
            f"{event.entity_type} {event.entity_id} {event.action}"
        )
        if event.old_values:
            click.echo(f"    before: {json.dumps(event.old_values, sort_keys=True)}")
        if event.new_values:
            click.echo(f"    after:  {json.dumps(event.new_values, sort_keys=True)}")


def register_commands(cli):
    """Register audit commands with main CLI."""
    cli.add_command(audit_group, name="audit")
