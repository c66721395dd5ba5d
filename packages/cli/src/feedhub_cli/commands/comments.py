"""comment commands: local comments and GitHub comment import."""

from __future__ import annotations

import click

from feedhub_cli.commands.output import console, unwrap


@click.group("comment")
def comment_cmd():
    """Add comments and import them from GitHub."""


@comment_cmd.command("add")
@click.argument("feedback_id")
@click.argument("content")
@click.option("--user", "user_id", default=None, help="Author user ID (default: first user).")
@click.pass_context
def comment_add(ctx, feedback_id: str, content: str, user_id: str | None):
    """Comment on a feedback and mirror the comment to its GitHub issue."""
    comment = unwrap(ctx.obj["engine"].add_comment(feedback_id, content, user_id=user_id))
    suffix = f" (GitHub comment {comment.remote_comment_id})" if comment.remote_comment_id else ""
    console.print(f"Comment added{suffix}.")


@comment_cmd.command("sync")
@click.argument("feedback_id")
@click.pass_context
def comment_sync(ctx, feedback_id: str):
    """Import new comments from the feedback's GitHub issue."""
    count = unwrap(ctx.obj["engine"].import_comments(feedback_id))
    if count:
        console.print(f"[green]Imported {count} new comment(s) from GitHub.[/green]")
    else:
        console.print("Already up to date.")


@comment_cmd.command("delete")
@click.argument("comment_id")
@click.pass_context
def comment_delete(ctx, comment_id: str):
    """Delete a local comment. The GitHub copy, if any, is left alone."""
    unwrap(ctx.obj["engine"].delete_comment(comment_id))
    console.print("Comment deleted.")
