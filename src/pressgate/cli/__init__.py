"""CLI commands for Pressgate.

Provides command-line interface using Typer:
- pressgate serve: Run the API server
- pressgate fetch-post: Fetch one post through the cache and merge path
- pressgate policies: Show the per-category cache policies

Usage:
    pressgate --help
    pressgate serve --port 8080
    pressgate fetch-post hello-world
    pressgate policies
"""

import typer

from pressgate.cli.fetch_cmd import app as fetch_app
from pressgate.cli.policies_cmd import app as policies_app
from pressgate.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="pressgate",
    help="Pressgate: caching content gateway for a headless WordPress CMS",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(fetch_app, name="fetch-post")
app.add_typer(policies_app, name="policies")


@app.callback()
def callback() -> None:
    """Pressgate: caching content gateway for a headless WordPress CMS."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
