"""JSON-serializable summaries consumed by the status and validate surfaces."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

__all__ = [
    "CheckStatus",
    "DependencyStatus",
    "NextJsStatus",
    "OpenNextStatus",
    "ProjectStatus",
    "ValidationCheck",
    "ValidationReport",
]

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

CheckStatus = Literal["pass", "fail", "warning"]


class NextJsStatus(BaseModel):
    model_config = _MODEL_CONFIG

    detected: bool
    version: str | None = None


class OpenNextStatus(BaseModel):
    model_config = _MODEL_CONFIG

    configured: bool
    worker_name: str | None = None
    account_id: str | None = None
    caching_strategy: str | None = None
    environments: list[str] = []


class DependencyStatus(BaseModel):
    model_config = _MODEL_CONFIG

    opennextjs_cloudflare: str | None = None
    wrangler: str | None = None


class ProjectStatus(BaseModel):
    """Snapshot of a project's OpenNext.js Cloudflare setup."""

    model_config = _MODEL_CONFIG

    next_js: NextJsStatus
    open_next: OpenNextStatus
    dependencies: DependencyStatus | None = None


class ValidationCheck(BaseModel):
    """One line of the validation report."""

    model_config = _MODEL_CONFIG

    name: str
    status: CheckStatus
    message: str
    fix: str | None = None


class ValidationReport(BaseModel):
    model_config = _MODEL_CONFIG

    checks: list[ValidationCheck] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return not self.errors

    @computed_field  # type: ignore[prop-decorator]
    @property
    def errors(self) -> list[ValidationCheck]:
        return [check for check in self.checks if check.status == "fail"]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def warnings(self) -> list[ValidationCheck]:
        return [check for check in self.checks if check.status == "warning"]
