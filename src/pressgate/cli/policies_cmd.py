"""CLI command listing the per-category cache policies.

Usage:
    pressgate policies
    pressgate policies --format json
"""

from __future__ import annotations

import orjson
import typer

from pressgate.cache.registry import CATEGORY_POLICIES

app = typer.Typer(help="Show cache policies per content category")


@app.callback(invoke_without_command=True)
def policies(
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Show TTL and capacity for each cache category."""
    if output_format == "json":
        data = {
            category: {
                "ttlSeconds": policy.ttl_seconds,
                "maxEntries": policy.max_entries,
                "monitoringEnabled": policy.monitoring_enabled,
            }
            for category, policy in CATEGORY_POLICIES.items()
        }
        typer.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())
        return

    if output_format != "text":
        typer.echo(f"Unknown format: {output_format}", err=True)
        raise typer.Exit(code=2)

    from rich.console import Console
    from rich.table import Table

    table = Table(title="Cache policies")
    table.add_column("Category")
    table.add_column("TTL (s)", justify="right")
    table.add_column("Max entries", justify="right")
    table.add_column("Monitoring")
    for category, policy in CATEGORY_POLICIES.items():
        table.add_row(
            category,
            str(policy.ttl_seconds),
            str(policy.max_entries),
            "yes" if policy.monitoring_enabled else "no",
        )
    Console().print(table)
