"""feedback commands: submit, edit and reconcile feedback with its GitHub issue."""

from __future__ import annotations

import click
from rich.table import Table

from feedhub_cli.commands.output import console, styled, unwrap
from feedhub_core.status import FEEDBACK_STATUSES, FEEDBACK_TYPES, PRIORITIES


@click.group("feedback")
def feedback_cmd():
    """Submit and manage feedback."""


@feedback_cmd.command("submit")
@click.option("--project", "project_id", required=True, help="Project ID.")
@click.option("--title", required=True)
@click.option("--description", required=True)
@click.option("--type", "fb_type", type=click.Choice(FEEDBACK_TYPES), default="bug", show_default=True)
@click.option("--priority", type=click.Choice(PRIORITIES), default="medium", show_default=True)
@click.pass_context
def feedback_submit(ctx, project_id: str, title: str, description: str, fb_type: str, priority: str):
    """Record feedback and open a matching GitHub issue when the project is bound."""
    engine = ctx.obj["engine"]
    feedback = unwrap(
        engine.create_feedback(
            project_id,
            {"title": title, "description": description, "type": fb_type, "priority": priority},
            author=engine.store.first_user(),
            ai_config=ctx.obj["ai_config"],
        )
    )
    console.print(f"Created feedback [bold]{feedback.id}[/bold] {styled(feedback.status)}")
    if feedback.remote_url:
        console.print(f"GitHub issue: {feedback.remote_url}")
    if feedback.ai_summary:
        console.print(f"[dim]AI summary: {feedback.ai_summary}[/dim]")


@feedback_cmd.command("list")
@click.option("--project", "project_id", default=None, help="Filter by project ID.")
@click.option("--status", type=click.Choice(FEEDBACK_STATUSES), default=None)
@click.option("--limit", default=20, show_default=True, help="Maximum number of rows to show.")
@click.pass_context
def feedback_list(ctx, project_id: str | None, status: str | None, limit: int):
    """List feedback, newest first."""
    items = ctx.obj["store"].list_feedback(project_id, status=status, limit=limit)
    if not items:
        console.print("[yellow]No feedback found.[/yellow]")
        return

    table = Table(title="Feedback", show_header=True, header_style="bold cyan")
    table.add_column("ID", width=32)
    table.add_column("Title", max_width=40)
    table.add_column("Type", width=11)
    table.add_column("Priority", width=8)
    table.add_column("Status", width=10)
    table.add_column("Issue", justify="right", width=7)
    for f in items:
        table.add_row(
            f.id,
            f.title[:40],
            f.type,
            f.priority,
            styled(f.status),
            f"#{f.remote_issue_id}" if f.remote_issue_id else "",
        )
    console.print(table)


@feedback_cmd.command("show")
@click.argument("feedback_id")
@click.pass_context
def feedback_show(ctx, feedback_id: str):
    """Show a feedback with its comments and linked tasks."""
    store = ctx.obj["store"]
    feedback = store.get_feedback(feedback_id)
    if feedback is None:
        raise click.ClickException("Feedback not found")

    console.print(f"[bold]{feedback.title}[/bold]  {styled(feedback.status)}")
    console.print(f"{feedback.type} · {feedback.priority} · via {feedback.source}")
    if feedback.remote_url:
        console.print(f"GitHub: {feedback.remote_url}")
    console.print(f"\n{feedback.description}\n")
    if feedback.ai_summary:
        console.print(
            f"[dim]AI: {feedback.ai_summary} "
            f"(suggests {feedback.ai_suggested_type or '-'} / {feedback.ai_suggested_priority or '-'})[/dim]\n"
        )

    for t in store.list_tasks(feedback_id=feedback.id):
        console.print(f"  task {t.id[:8]}  {styled(t.status)}  {t.title}")
    for c in store.list_comments(feedback.id):
        origin = "[blue]github[/blue]" if c.is_from_github else "local"
        console.print(f"\n[dim]{c.created_at[:19].replace('T', ' ')} · {origin}[/dim]\n{c.content}")


@feedback_cmd.command("update")
@click.argument("feedback_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--type", "fb_type", type=click.Choice(FEEDBACK_TYPES), default=None)
@click.option("--priority", type=click.Choice(PRIORITIES), default=None)
@click.pass_context
def feedback_update(ctx, feedback_id: str, title, description, fb_type, priority):
    """Edit feedback fields and push title/labels to its GitHub issue."""
    fields = {"title": title, "description": description, "type": fb_type, "priority": priority}
    fields = {k: v for k, v in fields.items() if v is not None}
    if not fields:
        raise click.UsageError("Nothing to update.")
    unwrap(ctx.obj["engine"].update_feedback(feedback_id, fields))
    console.print("Feedback updated.")


@feedback_cmd.command("status")
@click.argument("feedback_id")
@click.argument("status", type=click.Choice(FEEDBACK_STATUSES, case_sensitive=False))
@click.pass_context
def feedback_status(ctx, feedback_id: str, status: str):
    """Set a feedback status; the GitHub issue is opened or closed to match."""
    feedback = unwrap(ctx.obj["engine"].change_feedback_status(feedback_id, status))
    console.print(f"Feedback is now {styled(feedback.status)}")


@feedback_cmd.command("delete")
@click.argument("feedback_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def feedback_delete(ctx, feedback_id: str, yes: bool):
    """Delete a feedback, closing its GitHub issue first."""
    if not yes:
        click.confirm(f"Delete feedback {feedback_id}?", abort=True)
    unwrap(ctx.obj["engine"].delete_feedback(feedback_id))
    console.print("Feedback deleted.")


@feedback_cmd.command("pull-state")
@click.argument("feedback_id")
@click.pass_context
def feedback_pull_state(ctx, feedback_id: str):
    """Adopt the GitHub issue's open/closed state if it changed on GitHub."""
    feedback = unwrap(ctx.obj["engine"].pull_issue_state(feedback_id))
    console.print(f"Feedback is {styled(feedback.status)}")
