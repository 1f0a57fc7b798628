"""CLI command for running the API server.

Usage:
    pressgate serve
    pressgate serve --port 8080 --host 0.0.0.0
    pressgate serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from pressgate.config import settings

app = typer.Typer(help="Run the Pressgate API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(
        settings.host,
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(
        settings.port,
        "--port",
        "-p",
        help="Port to listen on",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Enable/disable access logging",
    ),
) -> None:
    """Run the Pressgate API server.

    The in-process cache is per process, so the server always runs a single
    worker; scale out with more processes behind a load balancer.
    """
    import uvicorn

    typer.echo("Starting Pressgate server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Log level: {log_level}")
    typer.echo(f"  CMS: {settings.wordpress_rest_url}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()
    typer.echo(f"API documentation: http://{host}:{port}/docs")
    typer.echo()

    uvicorn.run(
        app="pressgate.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
        access_log=access_log,
    )
