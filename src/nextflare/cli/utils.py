import json
from pathlib import Path
from typing import Any, NoReturn

import typer

from nextflare.cli.console import print_issues
from nextflare.exceptions import (
    ArtifactNotFoundError,
    ConfigValidationError,
    InvalidProjectFileError,
)
from nextflare.models.config import Config
from nextflare.models.deployment import DeploymentConfig
from nextflare.validation import validate

__all__ = ["handle_validation_error", "load_deployment_config", "read_json_file"]


def read_json_file(path: Path) -> dict[str, Any]:
    """Read a JSON object from ``path``."""
    if not path.is_file():
        raise ArtifactNotFoundError(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise InvalidProjectFileError(path, str(e)) from e
    if not isinstance(data, dict):
        raise InvalidProjectFileError(path, "expected a JSON object")
    return data


def handle_validation_error(e: ConfigValidationError) -> NoReturn:
    print_issues(e.issues)
    raise typer.Exit(e.exit_code) from e


def load_deployment_config(path: Path, settings: Config) -> DeploymentConfig:
    """
    Read and validate a deployment configuration file.

    A missing ``cachingStrategy`` is filled from ``settings.default_caching_strategy``.
    Schema violations are printed field by field before exiting with code 2.
    """
    raw = read_json_file(path)
    if "cachingStrategy" not in raw and "caching_strategy" not in raw:
        raw["cachingStrategy"] = settings.default_caching_strategy
    try:
        return validate(raw)
    except ConfigValidationError as e:
        handle_validation_error(e)
