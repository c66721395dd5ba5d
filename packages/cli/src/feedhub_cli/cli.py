"""CLI entry point for feedhub.

Commands:
  project: create projects, bind them to GitHub repositories, rotate API keys
  user: register a local author
  feedback: submit, edit, change status, delete, pull GitHub state
  task: create and move tasks (done resolves the linked feedback)
  comment: comment locally and import comments from GitHub
  serve: run the public ingestion API
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from feedhub_cli.commands.comments import comment_cmd
from feedhub_cli.commands.feedback import feedback_cmd
from feedhub_cli.commands.projects import project_cmd, user_cmd
from feedhub_cli.commands.serve import serve_cmd
from feedhub_cli.commands.tasks import task_cmd


def _build_engine(config: dict):
    """Wire the store, tracker and engine from loaded config.

    Lives in cli.py so neither feedhub_core nor feedhub_store know about the
    CLI config format.
    """
    from feedhub_core.gh.issues import get_tracker
    from feedhub_core.sync import ReconciliationEngine
    from feedhub_store.sqlite import SQLiteStore

    store = SQLiteStore(db_path=config.get("store_path") or ".feedhub.db")
    return ReconciliationEngine(store, get_tracker(config))


@click.group()
@click.version_option(
    version=importlib.metadata.version("feedhub"),
    prog_name="feedhub",
)
@click.option(
    "--config",
    "config_path",
    default=".feedhub.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="FEEDHUB_CONFIG",
)
@click.option("--db", "store_path", default=None, help="SQLite database path. Overrides store_path in config.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output, including GitHub sync failures.")
@click.pass_context
def main(ctx: click.Context, config_path: str, store_path: str | None, verbose: bool):
    """Feedback and task tracker that mirrors feedback into GitHub Issues."""
    from feedhub_cli.auth import resolve_github_token
    from feedhub_core.config import ai_config_from, load_config
    from feedhub_core.tasks import TaskLifecycle

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"store_path": store_path})

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    engine = _build_engine(config)
    ctx.obj["config"] = config
    ctx.obj["ai_config"] = ai_config_from(config)
    ctx.obj["engine"] = engine
    ctx.obj["store"] = engine.store
    ctx.obj["lifecycle"] = TaskLifecycle(engine)
    ctx.call_on_close(engine.store.close)


main.add_command(project_cmd)
main.add_command(user_cmd)
main.add_command(feedback_cmd)
main.add_command(task_cmd)
main.add_command(comment_cmd)
main.add_command(serve_cmd)
