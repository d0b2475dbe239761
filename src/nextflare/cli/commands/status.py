from pathlib import Path

import typer
from rich.table import Table

from nextflare.cli.console import console
from nextflare.cli.context import get_app_context


def status(
    root: Path | None = typer.Option(None, "--root", "-r", help="Project directory"),
    as_json: bool = typer.Option(False, "--json", help="Print the status as JSON"),
) -> None:
    """Show the OpenNext.js Cloudflare setup of a project."""
    ctx = get_app_context(root)
    project_status = ctx.project.status()

    if as_json:
        typer.echo(project_status.model_dump_json(by_alias=True, indent=2))
        return

    table = Table(title="Project Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    next_js = project_status.next_js
    table.add_row("Next.js", (next_js.version or "N/A") if next_js.detected else "not detected")

    open_next = project_status.open_next
    table.add_row("OpenNext.js", "configured" if open_next.configured else "not configured")
    if open_next.configured:
        table.add_row("Worker", open_next.worker_name or "N/A")
        table.add_row("Account ID", open_next.account_id or "N/A")
        table.add_row("Caching", open_next.caching_strategy or "N/A")
        table.add_row("Environments", ", ".join(open_next.environments) or "N/A")

    deps = project_status.dependencies
    if deps is not None:
        table.add_row("@opennextjs/cloudflare", deps.opennextjs_cloudflare or "missing")
        table.add_row("wrangler", deps.wrangler or "missing")

    console.print(table)
