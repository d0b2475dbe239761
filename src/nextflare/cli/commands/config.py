import typer
from pydantic import ValidationError

from nextflare.cli.console import console, print_issues
from nextflare.exceptions import NextflareError
from nextflare.models.config import PROJECT_CONFIG_FILENAME, Config, global_config_path
from nextflare.validation import issues_from_error

config_app = typer.Typer(no_args_is_help=True, help="Manage Nextflare configuration (show, path).")


@config_app.command()
def show() -> None:
    """Display the current Nextflare configuration."""
    try:
        config = Config()
    except ValidationError as e:
        print_issues(issues_from_error(e))
        raise NextflareError("Configuration validation failed.") from e
    console.print(config)


@config_app.command()
def path() -> None:
    """Show where configuration files are read from."""
    console.print(f"Global:  {global_config_path()}")
    console.print(f"Project: {PROJECT_CONFIG_FILENAME}")
