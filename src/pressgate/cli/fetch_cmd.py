"""CLI command for fetching one post through the full read path.

Runs the same cache, merge and enrichment path as the HTTP server and
prints the resulting post document as JSON. Useful for checking CMS
connectivity and the enrichment deadline from a shell.

Usage:
    pressgate fetch-post hello-world
    pressgate fetch-post hello-world --deadline 2 --compact
"""

from __future__ import annotations

import asyncio
from typing import Any

import orjson
import typer

from pressgate.config import settings

app = typer.Typer(help="Fetch one post by slug and print it as JSON")


async def _fetch(slug: str, deadline: float | None) -> dict[str, Any] | None:
    from pressgate.runtime import Runtime

    config = settings.model_copy(update={"cache_monitoring": False})
    if deadline is not None:
        config = config.model_copy(update={"merge_deadline": deadline})

    runtime = Runtime.build(config)
    try:
        return await runtime.content.fetch_post_by_slug(slug)
    finally:
        await runtime.stop()


@app.callback(invoke_without_command=True)
def fetch_post(
    slug: str = typer.Argument(..., help="Post slug"),
    deadline: float | None = typer.Option(
        None,
        "--deadline",
        "-d",
        help="Merge deadline in seconds (defaults to MERGE_DEADLINE)",
    ),
    compact: bool = typer.Option(
        False,
        "--compact",
        "-c",
        help="Print JSON on one line",
    ),
) -> None:
    """Fetch a post, merged with its SEO enrichment when available."""
    from rich.console import Console

    console = Console(stderr=True)

    if deadline is not None and deadline <= 0:
        console.print("[red]--deadline must be positive[/red]")
        raise typer.Exit(code=2)

    post = asyncio.run(_fetch(slug, deadline))
    if post is None:
        console.print(f"[yellow]Post not found or CMS unavailable:[/yellow] {slug}")
        raise typer.Exit(code=1)

    option = 0 if compact else orjson.OPT_INDENT_2
    typer.echo(orjson.dumps(post, option=option).decode())
    enriched = post.get("seo") is not None
    console.print(
        f"[green]✓[/green] {slug}: "
        + ("merged with SEO enrichment" if enriched else "primary data only")
    )
