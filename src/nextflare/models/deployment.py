from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from nextflare.constants import (
    CACHING_LADDER,
    CachingStrategy,
    DatabaseOption,
    EnvironmentRole,
)

__all__ = [
    "DeploymentConfig",
    "EnvironmentConfig",
    "ObservabilityConfig",
    "role_for_name",
]

# Input arrives camelCased from tool-invocation layers; Python callers use field names.
_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

SamplingRate = Annotated[float, Field(ge=0, le=1)]
NonEmptyStr = Annotated[str, Field(min_length=1)]


def role_for_name(name: Any) -> EnvironmentRole:
    """Default role for an environment that does not declare one."""
    if name == "development":
        return "development"
    if name == "production":
        return "production"
    return "custom"


class ObservabilityConfig(BaseModel):
    """Log and trace emission settings for one environment."""

    model_config = _MODEL_CONFIG

    logs: bool
    log_sampling_rate: SamplingRate
    traces: bool
    trace_sampling_rate: SamplingRate
    logpush: bool


class EnvironmentConfig(BaseModel):
    """A deployment environment (development, production, or anything custom)."""

    model_config = _MODEL_CONFIG

    name: NonEmptyStr
    role: EnvironmentRole
    """Which generated section this environment feeds. Defaults from ``name``."""

    observability: ObservabilityConfig
    vars: dict[str, str] | None = None
    """Reserved. Not emitted into wrangler.toml."""

    @model_validator(mode="before")
    @classmethod
    def _default_role(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("role") is None:
            data = {**data, "role": role_for_name(data.get("name"))}
        return data


class DeploymentConfig(BaseModel):
    """Validated OpenNext.js Cloudflare deployment configuration."""

    model_config = _MODEL_CONFIG

    worker_name: NonEmptyStr
    caching_strategy: CachingStrategy
    database: DatabaseOption
    image_optimization: bool
    analytics_engine: bool
    environments: tuple[EnvironmentConfig, ...]
    next_js_version: Annotated[str, Field(pattern=r"^\d+\.\d+\.\d+$")]
    compatibility_date: Annotated[str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$")]

    @field_validator("environments")
    @classmethod
    def _require_environment(
        cls, value: tuple[EnvironmentConfig, ...]
    ) -> tuple[EnvironmentConfig, ...]:
        # Only reached when every entry validated.
        if not value:
            raise PydanticCustomError("too_short", "At least one environment is required")
        return value

    @property
    def caching_tier(self) -> int:
        """Position of the caching strategy on the ladder, 0 for static assets."""
        return CACHING_LADDER.index(self.caching_strategy)

    @property
    def next_js_major(self) -> int:
        return int(self.next_js_version.split(".", 1)[0])

    def environment_for(self, role: EnvironmentRole) -> EnvironmentConfig | None:
        """Return the first environment with the given role, if any."""
        for environment in self.environments:
            if environment.role == role:
                return environment
        return None
