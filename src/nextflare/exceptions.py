from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "ArtifactNotFoundError",
    "ConfigValidationError",
    "InvalidProjectFileError",
    "NextflareError",
    "ValidationIssue",
]


class NextflareError(Exception):
    """Base exception for all Nextflare errors."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


@dataclass(frozen=True)
class ValidationIssue:
    """A single schema or range violation, addressed by its input field path."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ConfigValidationError(NextflareError):
    """Raised when a deployment configuration violates the schema.

    Always carries every violation found, never just the first one.
    """

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(
            f"Deployment configuration is invalid ({len(self.issues)} issue(s)):\n{lines}",
            exit_code=2,
        )

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class ArtifactNotFoundError(NextflareError):
    """Raised when an expected descriptor file does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"File not found: {path}", exit_code=3)


class InvalidProjectFileError(NextflareError):
    """Raised when a project file exists but cannot be read as expected."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Could not read {path}: {reason}", exit_code=1)
