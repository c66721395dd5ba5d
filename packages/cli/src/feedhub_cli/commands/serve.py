"""serve command: run the public ingestion API."""

from __future__ import annotations

import click

from feedhub_cli.commands.output import console


@click.command("serve")
@click.option("--host", default=None, help="Bind address. Overrides api_host in config.")
@click.option("--port", type=int, default=None, help="Bind port. Overrides api_port in config.")
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None):
    """Serve POST /api/v1/feedback and friends for external callers."""
    import uvicorn

    from feedhub_api.app import create_app

    config = ctx.obj["config"]
    host = host or config["api_host"]
    port = port or config["api_port"]
    app = create_app(ctx.obj["engine"], ai_config=ctx.obj["ai_config"])
    console.print(f"Ingestion API listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
