"""Validation of raw deployment configuration input."""

from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from nextflare.exceptions import ConfigValidationError, ValidationIssue
from nextflare.models.deployment import DeploymentConfig

__all__ = ["apply_changes", "collect_issues", "issues_from_error", "validate"]

# Friendlier wording for pattern failures, keyed by the last path segment.
_PATTERN_MESSAGES: dict[str, str] = {
    "nextJsVersion": "Invalid Next.js version format (expected MAJOR.MINOR.PATCH)",
    "compatibilityDate": "Invalid date format (YYYY-MM-DD)",
}

_TOO_SHORT_MESSAGES: dict[str, str] = {
    "workerName": "Worker name is required",
    "name": "Environment name is required",
    "environments": "At least one environment is required",
}


def _issue_from_error(error: Mapping[str, Any]) -> ValidationIssue:
    loc = tuple(str(part) for part in error["loc"])
    field_name = ".".join(loc) or "config"
    leaf = loc[-1] if loc else ""
    message = error["msg"]
    if error["type"] == "string_pattern_mismatch" and leaf in _PATTERN_MESSAGES:
        message = _PATTERN_MESSAGES[leaf]
    elif error["type"] in ("string_too_short", "too_short") and leaf in _TOO_SHORT_MESSAGES:
        message = _TOO_SHORT_MESSAGES[leaf]
    return ValidationIssue(field=field_name, message=message)


def issues_from_error(e: ValidationError) -> list[ValidationIssue]:
    """Flatten a pydantic ValidationError into one issue per violation."""
    return [_issue_from_error(error) for error in e.errors()]


def collect_issues(raw: Any) -> list[ValidationIssue]:
    """Return every violation in ``raw``; an empty list means it is valid."""
    try:
        DeploymentConfig.model_validate(raw)
    except ValidationError as e:
        return issues_from_error(e)
    return []


def validate(raw: Any) -> DeploymentConfig:
    """
    Validate untyped input into a DeploymentConfig.

    Args:
        raw: Mapping with camelCase (or snake_case) keys.

    Returns:
        The frozen, validated configuration.

    Raises:
        ConfigValidationError: With the complete list of violations.
    """
    try:
        config = DeploymentConfig.model_validate(raw)
    except ValidationError as e:
        issues = issues_from_error(e)
        logger.debug(f"Configuration rejected with {len(issues)} issue(s)")
        raise ConfigValidationError(issues) from e
    logger.debug(f"Configuration for worker '{config.worker_name}' is valid")
    return config


def apply_changes(config: DeploymentConfig, changes: Mapping[str, Any]) -> DeploymentConfig:
    """
    Return a new validated config with top-level fields replaced.

    The original config is left untouched. Keys may be camelCase or snake_case.
    """
    merged = config.model_dump(by_alias=True)
    merged.update({to_camel(key): value for key, value in changes.items()})
    return validate(merged)
