"""project and user commands: manage projects, their GitHub binding and API keys."""

from __future__ import annotations

import secrets
import string

import click
from rich.table import Table

from feedhub_cli.commands.output import console
from feedhub_store.models import Project, User

_KEY_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_api_key() -> str:
    return "fhk_" + "".join(secrets.choice(_KEY_ALPHABET) for _ in range(24))


def _project_or_fail(store, project_id: str) -> Project:
    project = store.get_project(project_id)
    if project is None:
        raise click.ClickException(f"Project {project_id} not found.")
    return project


@click.group("project")
def project_cmd():
    """Manage projects and their GitHub repository binding."""


@project_cmd.command("add")
@click.argument("name")
@click.option("--repo", default=None, help="GitHub repository (owner/name) to mirror feedback into.")
@click.pass_context
def project_add(ctx, name: str, repo: str | None):
    """Create a project and print its ingestion API key."""
    store = ctx.obj["store"]
    project = store.create_project(Project(name=name, api_key=generate_api_key(), remote_repo_full_name=repo))
    console.print(f"Created project [bold]{project.name}[/bold] ({project.id})")
    console.print(f"API key: [bold]{project.api_key}[/bold]")


@project_cmd.command("list")
@click.pass_context
def project_list(ctx):
    """List all projects."""
    projects = ctx.obj["store"].list_projects()
    if not projects:
        console.print("[yellow]No projects yet. Create one with `feedhub project add`.[/yellow]")
        return

    table = Table(title="Projects", show_header=True, header_style="bold cyan")
    table.add_column("ID", width=32)
    table.add_column("Name")
    table.add_column("Repository")
    table.add_column("Active", width=7)
    for p in projects:
        table.add_row(
            p.id,
            p.name,
            p.remote_repo_full_name or "[dim]not linked[/dim]",
            "[green]yes[/green]" if p.is_active else "[red]no[/red]",
        )
    console.print(table)


@project_cmd.command("bind")
@click.argument("project_id")
@click.argument("repo", required=False)
@click.option("--unbind", is_flag=True, help="Stop mirroring this project to GitHub.")
@click.pass_context
def project_bind(ctx, project_id: str, repo: str | None, unbind: bool):
    """Bind a project to a GitHub repository (owner/name)."""
    store = ctx.obj["store"]
    _project_or_fail(store, project_id)
    if unbind:
        store.update_project(project_id, remote_repo_full_name=None)
        console.print("Project unbound; feedback will no longer be mirrored.")
        return
    if not repo or repo.count("/") != 1:
        raise click.UsageError("REPO must be in owner/name format.")
    store.update_project(project_id, remote_repo_full_name=repo)
    console.print(f"Project now mirrors to [bold]{repo}[/bold].")


@project_cmd.command("key")
@click.argument("project_id")
@click.pass_context
def project_key(ctx, project_id: str):
    """Regenerate a project's ingestion API key. The old key stops working."""
    store = ctx.obj["store"]
    _project_or_fail(store, project_id)
    project = store.update_project(project_id, api_key=generate_api_key())
    console.print(f"New API key: [bold]{project.api_key}[/bold]")


@project_cmd.command("activate")
@click.argument("project_id")
@click.pass_context
def project_activate(ctx, project_id: str):
    store = ctx.obj["store"]
    _project_or_fail(store, project_id)
    store.update_project(project_id, is_active=True)
    console.print("Project activated.")


@project_cmd.command("deactivate")
@click.argument("project_id")
@click.pass_context
def project_deactivate(ctx, project_id: str):
    """Deactivate a project; its API key is rejected until reactivated."""
    store = ctx.obj["store"]
    _project_or_fail(store, project_id)
    store.update_project(project_id, is_active=False)
    console.print("Project deactivated.")


@click.command("user")
@click.argument("name")
@click.option("--email", default="", help="Shown as the author on mirrored GitHub issues.")
@click.pass_context
def user_cmd(ctx, name: str, email: str):
    """Register a local user. The first user is the default author."""
    user = ctx.obj["store"].create_user(User(name=name, email=email))
    console.print(f"Created user [bold]{user.name}[/bold] ({user.id})")
