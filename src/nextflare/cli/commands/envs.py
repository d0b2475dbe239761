from pathlib import Path

import typer

from nextflare.cli.console import console
from nextflare.cli.context import get_app_context


def list_environments(
    root: Path | None = typer.Option(None, "--root", "-r", help="Project directory"),
) -> None:
    """List the environments declared in wrangler.toml."""
    ctx = get_app_context(root)
    environments = ctx.project.list_environments()

    if not environments:
        console.print("[yellow]No environments found.[/yellow]")
        return

    for name in environments:
        console.print(f"[cyan]{name}[/cyan]")
