"""Pydantic models for views recovered from existing descriptor files."""

from typing import Literal

from pydantic import BaseModel, ConfigDict

from nextflare.constants import CachingStrategy

__all__ = ["Diagnostic", "ExtractedView", "OpenNextView", "Severity"]

Severity = Literal["warning", "error"]


class ExtractedView(BaseModel):
    """
    Partial structured view of a wrangler.toml.

    Every field is optional: the source may be hand-edited or predate this tool.
    """

    model_config = ConfigDict(frozen=True)

    worker_name: str | None = None
    account_id: str | None = None
    compatibility_date: str | None = None
    caching_strategy: CachingStrategy | None = None
    """Inferred from the deepest caching tier whose bindings are present."""

    environment_names: tuple[str, ...] = ()
    bindings: tuple[str, ...] = ()
    """Binding table kinds seen, e.g. ``r2_buckets`` or ``durable_objects.bindings``."""

    binding_names: tuple[str, ...] = ()
    durable_object_classes: tuple[str, ...] = ()
    placeholders: tuple[str, ...] = ()
    """Sentinel identifiers still waiting for a provisioning step."""

    def has_binding(self, kind: str) -> bool:
        return kind in self.bindings


class OpenNextView(BaseModel):
    """Fields recovered from open-next.config.ts."""

    model_config = ConfigDict(frozen=True)

    caching_strategy: str | None = None
    account_id: str | None = None


class Diagnostic(BaseModel):
    """An advisory finding. Returned as data, never raised."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    code: str
    message: str
    fix: str | None = None
