"""CLI application using Typer."""

import sys

import typer
from pydantic import ValidationError

from nextflare.cli.commands.config import config_app
from nextflare.cli.commands.envs import list_environments
from nextflare.cli.commands.generate import generate
from nextflare.cli.commands.status import status
from nextflare.cli.commands.validate import validate_project
from nextflare.cli.console import print_error
from nextflare.exceptions import NextflareError
from nextflare.models.config import Config

__all__ = ["app", "main"]

app = typer.Typer(
    name="nextflare",
    help="Generate and check wrangler.toml for OpenNext.js Cloudflare projects.",
    add_completion=True,
    no_args_is_help=True,
)


def _configured_log_level() -> str:
    try:
        return Config().log_level
    except ValidationError:
        return "INFO"


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Nextflare CLI entry point.
    """
    from nextflare.logging import configure_logging

    configure_logging("DEBUG" if verbose else _configured_log_level())


# config has subcommands (show, path)
app.add_typer(config_app, name="config")

app.command(name="generate")(generate)
app.command(name="status")(status)
app.command(name="validate")(validate_project)
app.command(name="envs")(list_environments)


def main() -> None:
    """Main entry point for CLI."""
    try:
        app()
    except NextflareError as e:
        print_error(e.message)
        sys.exit(e.exit_code)
    except Exception as e:
        print_error(f"An unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
