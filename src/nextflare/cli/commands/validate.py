from pathlib import Path

import typer

from nextflare.cli.console import console, print_check
from nextflare.cli.context import get_app_context
from nextflare.cli.utils import load_deployment_config


def validate_project(
    root: Path | None = typer.Option(None, "--root", "-r", help="Project directory"),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Deployment configuration to check against the existing wrangler.toml",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Check a project's wrangler.toml, open-next.config.ts and package.json."""
    ctx = get_app_context(root)
    config = load_deployment_config(config_file, ctx.config) if config_file else None
    report = ctx.project.validation_report(config)

    if as_json:
        typer.echo(report.model_dump_json(by_alias=True, indent=2))
    else:
        for check in report.checks:
            print_check(check)
        console.print()
        summary = f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        if report.valid:
            console.print(f"[bold green]Project is valid[/bold green] ({summary})")
        else:
            console.print(f"[bold red]Project has problems[/bold red] ({summary})")

    if not report.valid:
        raise typer.Exit(1)
