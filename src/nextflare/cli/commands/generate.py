from pathlib import Path

import typer

from nextflare.cli.console import print_diagnostics, print_info, print_success
from nextflare.cli.context import get_app_context
from nextflare.cli.utils import load_deployment_config
from nextflare.core.consistency import check_consistency
from nextflare.services.writer import ArtifactWriter


def generate(
    config_file: Path = typer.Argument(
        ..., help="JSON deployment configuration (camelCase keys)", show_default=False
    ),
    root: Path | None = typer.Option(None, "--root", "-r", help="Project directory"),
    merge: bool = typer.Option(
        False, "--merge", help="Keep sections of the existing wrangler.toml this tool does not own"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the generated wrangler.toml instead of writing it"
    ),
    no_backup: bool = typer.Option(
        False, "--no-backup", help="Do not back up an existing wrangler.toml"
    ),
    scripts: bool = typer.Option(
        False, "--scripts", help="Also add the OpenNext.js scripts to package.json"
    ),
) -> None:
    """Compile a deployment configuration into wrangler.toml."""
    ctx = get_app_context(root)
    config = load_deployment_config(config_file, ctx.config)

    print_diagnostics(check_consistency(config))

    writer = ctx.writer
    if no_backup:
        writer = ArtifactWriter(ctx.config.project_root, auto_backup=False)

    result = writer.write(
        config,
        merge=merge or ctx.config.preserve_unknown_sections,
        dry_run=dry_run,
    )

    if result.dry_run:
        typer.echo(result.content, nl=False)
        return

    verb = "Updated" if result.action == "update" else "Generated"
    print_success(f"{verb} {result.path}")
    if result.backup_path:
        print_info(f"Previous version saved to {result.backup_path}")

    if scripts and ctx.project.update_package_scripts():
        print_success("Added OpenNext.js Cloudflare scripts to package.json")
