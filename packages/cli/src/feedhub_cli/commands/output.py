"""Shared rendering for command results."""

from __future__ import annotations

import click
from rich.console import Console

from feedhub_core.result import ActionResult

console = Console()

STATUS_STYLE = {
    "OPEN": "yellow",
    "ASSIGNED": "cyan",
    "RESOLVED": "green",
    "CLOSED": "dim",
    "todo": "yellow",
    "in_progress": "cyan",
    "review": "magenta",
    "done": "green",
}


def styled(status: str) -> str:
    style = STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def unwrap(result: ActionResult):
    """Return result.data, or raise a ClickException describing the failure.

    Warnings are printed but never fail the command.
    """
    if result.not_found:
        raise click.ClickException(result.message or "Not found.")
    if result.errors:
        details = "; ".join(f"{field}: {msg}" for field, msg in result.errors.items())
        raise click.UsageError(details)
    if result.warning:
        console.print(f"[yellow]Warning: {result.warning}[/yellow]")
    return result.data
