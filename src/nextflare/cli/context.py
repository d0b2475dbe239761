"""Typed application context and factory for CLI commands."""

from dataclasses import dataclass, field
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from nextflare.cli.console import console as _console
from nextflare.cli.console import err_console as _err_console
from nextflare.models.config import Config
from nextflare.services.project import ProjectService
from nextflare.services.writer import ArtifactWriter

__all__ = ["AppContext", "get_app_context"]


@dataclass(frozen=True)
class AppContext:
    """Typed container for shared CLI dependencies."""

    config: Config
    project: ProjectService
    writer: ArtifactWriter
    console: Console = field(default_factory=lambda: _console)
    err_console: Console = field(default_factory=lambda: _err_console)


def get_app_context(root: Path | None = None) -> AppContext:
    """Build the services for one command invocation.

    ``root`` overrides the configured project root.
    Raises typer.Exit(1) on configuration errors.
    """
    try:
        config = Config() if root is None else Config(project_root=root)
    except ValidationError as e:
        _err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        _err_console.print(
            "[dim]Hint: Check NEXTFLARE_* variables, .env, .nextflare.json "
            "and ~/.nextflare/config.json.[/dim]"
        )
        raise typer.Exit(1) from e

    return AppContext(
        config=config,
        project=ProjectService(config.project_root),
        writer=ArtifactWriter(
            config.project_root,
            backup_dir=config.resolve_backup_dir(),
            auto_backup=config.auto_backup,
        ),
        console=_console,
        err_console=_err_console,
    )
