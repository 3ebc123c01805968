"""Fairway CLI — operator commands for the messaging core."""

import sys

import click
from rich.console import Console
from rich.table import Table

from fairway import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, envvar="FAIRWAY_CONFIG", help="YAML settings file")
@click.pass_context
def main(ctx: click.Context, config_path: str | None):
    """Fairway — messaging safety and delivery for coaching workspaces.

    Screen message text with the content guard, run the retention purge
    and inspect the moderation audit trail.
    """
    from fairway.config import load_settings

    ctx.obj = load_settings(config_path=config_path)


# ── Scan ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--keyword", "-k", multiple=True, help="Sensitive keyword (repeatable)")
@click.option("--policy", default="flag", type=click.Choice(["flag", "block"]), help="Guard mode")
@click.option(
    "--kind",
    default="student_coach",
    type=click.Choice(["student_coach", "coach_coach", "group", "group_info", "org_info", "org_coaches"]),
    help="Thread kind the text would be sent to",
)
def scan(text: str, keyword: tuple, policy: str, kind: str):
    """Run the content guard on TEXT and show the block decision."""
    from fairway.messages.access import is_minor_thread
    from fairway.messages.content_guard import detect, should_block

    flags = detect(text, list(keyword))

    if not flags:
        console.print("[green]No flags.[/]")
    else:
        table = Table(title=f"Content Flags ({len(flags)} found)")
        table.add_column("Type", style="cyan")
        table.add_column("Matched Text")
        for flag in flags:
            table.add_row(flag.type.value, flag.matched_text)
        console.print(table)

    minor = is_minor_thread(kind)
    if should_block(policy, minor, flags):
        console.print(f"[red]BLOCKED[/] on {kind} thread (guard mode: {policy})")
    elif flags:
        console.print(f"[yellow]ALLOWED, FLAGGED[/] on {kind} thread (guard mode: {policy})")
    else:
        console.print(f"[green]ALLOWED[/] on {kind} thread")


# ── Purge ────────────────────────────────────────────────────────────


@main.command()
@click.option("--token", envvar="FAIRWAY_PURGE_TOKEN", default=None, help="Purge secret")
@click.pass_obj
def purge(settings, token: str | None):
    """Redact messages and delete resolved reports past their retention."""
    from fairway.container import build_services
    from fairway.messages.purge import PurgeStatus

    services = build_services(settings)
    outcome = services.purge.handle(None, direct_token=token)

    if outcome.status != PurgeStatus.ok:
        console.print(f"[red]Purge {outcome.status.value}:[/] {outcome.error}")
        sys.exit(1)

    console.print(
        f"[green]Purge done.[/] Redacted messages: {outcome.result.redacted_messages}, "
        f"deleted reports: {outcome.result.deleted_reports}"
    )


# ── Audit ────────────────────────────────────────────────────────────


@main.command()
@click.argument("org_id")
@click.option("--thread", "thread_id", default=None, help="Only records of this thread")
@click.option("--action", default=None, help="Only records with this action")
@click.option("--limit", "-n", default=50, show_default=True, help="Maximum number of records")
@click.pass_obj
def audit(settings, org_id: str, thread_id: str | None, action: str | None, limit: int):
    """List the moderation audit trail of ORG_ID, newest first."""
    from fairway.moderation.audit import ModerationAuditLog

    log = ModerationAuditLog(settings.data_dir / "moderation_audit")
    records = log.list_records(org_id, thread_id=thread_id, action=action, limit=limit)

    if not records:
        console.print("[yellow]No audit records found.[/]")
        return

    table = Table(title=f"Moderation Audit ({len(records)} records)")
    table.add_column("When", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Actor")
    table.add_column("Thread")
    table.add_column("Report")

    for r in records:
        table.add_row(r.created_at, r.action, r.actor_user_id, r.thread_id or "", r.report_id or "")

    console.print(table)


# ── Sessions ─────────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.option("--role", default="coach", type=click.Choice(["owner", "coach", "staff", "student", "parent"]))
@click.option("--workspace", "workspace_id", required=True, help="Active workspace id")
@click.option("--org/--personal", "is_org", default=False, help="Workspace type")
@click.option("--admin", is_flag=True, help="Org membership role admin (otherwise coach)")
@click.option("--hours", default=24, show_default=True, help="Session lifetime")
@click.option("--accept-charter", is_flag=True, help="Also accept the workspace's current messaging charter")
@click.pass_obj
def session(
    settings,
    user_id: str,
    role: str,
    workspace_id: str,
    is_org: bool,
    admin: bool,
    hours: int,
    accept_charter: bool,
):
    """Issue a bearer session token for USER_ID (development helper)."""
    from fairway.auth.models import ActorContext
    from fairway.auth.store import SessionStore

    actor = ActorContext(
        user_id=user_id,
        profile_role=role,
        workspace_id=workspace_id,
        workspace_type="org" if is_org else "personal",
        workspace_owner_id=None if is_org else user_id,
        org_membership_role=("admin" if admin else "coach") if is_org else None,
    )
    store = SessionStore(settings.data_dir / "auth")
    created, raw_token = store.create_session(actor, expires_in_hours=hours)

    if accept_charter:
        from fairway.container import build_services

        charter = build_services(settings).charter
        status = charter.accept(actor, charter.status(actor).charter_version)
        console.print(f"Charter v{status.charter_version} accepted")

    console.print(f"Session {created.id} expires {created.expires_at}")
    click.echo(raw_token)
