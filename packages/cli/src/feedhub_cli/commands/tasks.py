"""task commands: task board operations, including the feedback cascade."""

from __future__ import annotations

import click
from rich.table import Table

from feedhub_cli.commands.output import console, styled, unwrap
from feedhub_core.status import PRIORITIES, TASK_STATUSES


@click.group("task")
def task_cmd():
    """Create and move tasks."""


@task_cmd.command("add")
@click.option("--project", "project_id", required=True, help="Project ID.")
@click.option("--title", required=True)
@click.option("--description", default=None)
@click.option("--priority", type=click.Choice(PRIORITIES), default="medium", show_default=True)
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD).")
@click.option("--feedback", "feedback_id", default=None, help="Link the task to a feedback.")
@click.pass_context
def task_add(ctx, project_id, title, description, priority, due_date, feedback_id):
    task = unwrap(
        ctx.obj["lifecycle"].create_task(
            project_id,
            {
                "title": title,
                "description": description,
                "priority": priority,
                "due_date": due_date,
                "feedback_id": feedback_id,
            },
        )
    )
    console.print(f"Created task [bold]{task.id}[/bold]")


@task_cmd.command("list")
@click.option("--project", "project_id", default=None)
@click.option("--status", type=click.Choice(TASK_STATUSES), default=None)
@click.pass_context
def task_list(ctx, project_id, status):
    tasks = ctx.obj["store"].list_tasks(project_id, status=status)
    if not tasks:
        console.print("[yellow]No tasks found.[/yellow]")
        return

    table = Table(title="Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID", width=32)
    table.add_column("Title", max_width=40)
    table.add_column("Status", width=11)
    table.add_column("Priority", width=8)
    table.add_column("Due", width=10)
    table.add_column("Feedback", width=8)
    for t in tasks:
        title = f"  ↳ {t.title}" if t.parent_task_id else t.title
        table.add_row(
            t.id,
            title[:40],
            styled(t.status),
            t.priority,
            t.due_date or "",
            t.feedback_id[:8] if t.feedback_id else "",
        )
    console.print(table)


@task_cmd.command("status")
@click.argument("task_id")
@click.argument("status", type=click.Choice(TASK_STATUSES))
@click.pass_context
def task_status(ctx, task_id: str, status: str):
    """Move a task. Moving to done resolves its linked feedback."""
    task = unwrap(ctx.obj["lifecycle"].set_status(task_id, status))
    console.print(f"Task is now {styled(task.status)}")
    if task.status == "done" and task.feedback_id:
        console.print(f"Linked feedback {task.feedback_id[:8]} marked {styled('RESOLVED')}")


@task_cmd.command("delete")
@click.argument("task_id")
@click.pass_context
def task_delete(ctx, task_id: str):
    unwrap(ctx.obj["lifecycle"].delete_task(task_id))
    console.print("Task deleted.")


@task_cmd.command("convert")
@click.argument("feedback_id")
@click.pass_context
def task_convert(ctx, feedback_id: str):
    """Create a task from a feedback and mark the feedback ASSIGNED."""
    task = unwrap(ctx.obj["lifecycle"].convert_feedback(feedback_id, ai_config=ctx.obj["ai_config"]))
    console.print(f"Created task [bold]{task.id}[/bold]: {task.title}")


@task_cmd.command("breakdown")
@click.argument("task_id")
@click.pass_context
def task_breakdown(ctx, task_id: str):
    """Ask the configured AI provider to split a task into subtasks."""
    subtasks = unwrap(ctx.obj["lifecycle"].breakdown(task_id, ai_config=ctx.obj["ai_config"]))
    console.print(f"Created {len(subtasks)} subtasks:")
    for s in subtasks:
        points = f" ({s.story_points} pts)" if s.story_points else ""
        console.print(f"  • {s.title}{points}")
