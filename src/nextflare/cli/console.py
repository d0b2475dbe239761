from collections.abc import Iterable

from rich.console import Console

from nextflare.exceptions import ValidationIssue
from nextflare.models.artifact import Diagnostic
from nextflare.models.report import ValidationCheck

__all__ = [
    "console",
    "err_console",
    "print_check",
    "print_diagnostics",
    "print_error",
    "print_info",
    "print_issues",
    "print_success",
    "print_warning",
]

# standard console for stdout
console = Console()
"""Standard console for stdout."""

# error console for stderr
err_console = Console(stderr=True)
"""Error console for stderr."""

_CHECK_ICONS = {
    "pass": "[green]✓[/green]",
    "fail": "[red]✗[/red]",
    "warning": "[yellow]![/yellow]",
}


def print_error(message: str) -> None:
    """Print an error message to stderr with consistent styling."""
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message to stdout with consistent styling."""
    console.print(f"[bold green]{message}[/bold green]")


def print_warning(message: str) -> None:
    """Print a warning message to stderr with consistent styling."""
    err_console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message to stdout."""
    console.print(f"[blue]{message}[/blue]")


def print_issues(issues: Iterable[ValidationIssue]) -> None:
    """Print every schema violation, one per line, to stderr."""
    err_console.print("[bold red]Configuration Error:[/bold red]")
    for issue in issues:
        err_console.print(f"  Field [bold]{issue.field}[/bold]: {issue.message}")


def print_diagnostics(diagnostics: Iterable[Diagnostic]) -> None:
    """Print consistency findings to stderr with their suggested fixes."""
    for diagnostic in diagnostics:
        if diagnostic.severity == "error":
            print_error(diagnostic.message)
        else:
            print_warning(diagnostic.message)
        if diagnostic.fix:
            err_console.print(f"  [dim]Fix: {diagnostic.fix}[/dim]")


def print_check(check: ValidationCheck) -> None:
    console.print(f"{_CHECK_ICONS[check.status]} {check.name}: {check.message}")
    if check.fix and check.status != "pass":
        console.print(f"  [dim]Fix: {check.fix}[/dim]")
