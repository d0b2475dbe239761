"""Advisory cross-checks between a configuration and an extracted artifact view."""

from collections import Counter

from loguru import logger

from nextflare.constants import BINDINGS, EXPERIMENTAL_NEXTJS_MAJOR
from nextflare.core.resolver import Section, cache_sections_for
from nextflare.models.artifact import Diagnostic, ExtractedView
from nextflare.models.deployment import DeploymentConfig

__all__ = ["check_consistency"]

_REGENERATE = "Run `nextflare generate` to regenerate wrangler.toml"

_DATABASE_BINDINGS = {"d1": "d1_databases", "hyperdrive": "hyperdrive"}


def _check_environments(config: DeploymentConfig) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    counts = Counter(env.name for env in config.environments)
    for name, count in counts.items():
        if count > 1:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="duplicate-environment",
                    message=(
                        f"Environment '{name}' is declared {count} times; "
                        "only the first is used"
                    ),
                    fix=f"Remove the duplicate '{name}' entries",
                )
            )

    emitted = {
        id(env)
        for env in (config.environment_for("development"), config.environment_for("production"))
        if env is not None
    }
    for env in config.environments:
        obs = env.observability
        if obs.logs and obs.log_sampling_rate == 0:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="zero-log-sampling",
                    message=f"Environment '{env.name}' enables logs with a sampling rate of 0",
                    fix="Raise logSamplingRate above 0 or disable logs",
                )
            )
        if obs.traces and obs.trace_sampling_rate == 0:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="zero-trace-sampling",
                    message=f"Environment '{env.name}' enables traces with a sampling rate of 0",
                    fix="Raise traceSamplingRate above 0 or disable traces",
                )
            )
        if id(env) not in emitted and counts[env.name] == 1:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="environment-not-emitted",
                    message=(
                        f"Environment '{env.name}' has role '{env.role}' and is not written "
                        "to wrangler.toml"
                    ),
                    fix="Give it the development or production role, or add it by hand",
                )
            )
        if env.vars:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="vars-not-emitted",
                    message=(
                        f"Variables of environment '{env.name}' are not written "
                        "to wrangler.toml"
                    ),
                    fix="Add them under [vars] or [env.<name>.vars] by hand",
                )
            )

    if not emitted:
        diagnostics.append(
            Diagnostic(
                severity="warning",
                code="no-observability",
                message=(
                    "No development or production environment; "
                    "no observability is configured"
                ),
                fix="Name an environment 'development' or 'production'",
            )
        )
    return diagnostics


def _check_drift(config: DeploymentConfig, extracted: ExtractedView) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    required = cache_sections_for(config.caching_strategy)
    drift_checks = (
        (
            Section.SERVICE_SELF_REFERENCE,
            BINDINGS.self_reference in extracted.binding_names,
            "missing-service-binding",
            f"the '{BINDINGS.self_reference}' service binding",
        ),
        (
            Section.CACHE_BUCKET,
            BINDINGS.cache_bucket in extracted.binding_names,
            "missing-cache-bucket",
            f"the '{BINDINGS.cache_bucket}' R2 bucket binding",
        ),
        (
            Section.QUEUE,
            BINDINGS.queue_class in extracted.durable_object_classes,
            "missing-queue-binding",
            f"the '{BINDINGS.queue_class}' Durable Object binding",
        ),
        (
            Section.TAG_CACHE,
            BINDINGS.tag_cache_class in extracted.durable_object_classes,
            "missing-tag-cache-binding",
            f"the '{BINDINGS.tag_cache_class}' Durable Object binding",
        ),
    )
    for section, present, code, what in drift_checks:
        if section in required and not present:
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code=code,
                    message=(
                        f"Caching strategy '{config.caching_strategy}' needs {what}, "
                        "but wrangler.toml does not define it"
                    ),
                    fix=_REGENERATE,
                )
            )

    for database, kind in _DATABASE_BINDINGS.items():
        if config.database == database and not extracted.has_binding(kind):
            diagnostics.append(
                Diagnostic(
                    severity="error",
                    code="missing-database-binding",
                    message=(
                        f"Database '{database}' is configured but wrangler.toml has no [[{kind}]] "
                        "binding; the worker will fail at runtime"
                    ),
                    fix=_REGENERATE,
                )
            )
        if config.database != database and extracted.has_binding(kind):
            diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code="unexpected-database-binding",
                    message=(
                        f"wrangler.toml defines a [[{kind}]] binding but the configured "
                        f"database is '{config.database}'"
                    ),
                    fix=_REGENERATE,
                )
            )

    if extracted.worker_name is not None and extracted.worker_name != config.worker_name:
        diagnostics.append(
            Diagnostic(
                severity="warning",
                code="worker-name-drift",
                message=(
                    f"wrangler.toml names the worker '{extracted.worker_name}' but the "
                    f"configuration says '{config.worker_name}'"
                ),
                fix=_REGENERATE,
            )
        )

    for placeholder in extracted.placeholders:
        diagnostics.append(
            Diagnostic(
                severity="warning",
                code="unprovisioned-placeholder",
                message=f"wrangler.toml still contains the placeholder '{placeholder}'",
                fix="Create the resource with wrangler and replace the placeholder with its id",
            )
        )
    return diagnostics


def check_consistency(
    config: DeploymentConfig, extracted: ExtractedView | None = None
) -> list[Diagnostic]:
    """
    Cross-check ``config`` (and, if given, an extracted artifact view).

    Advisory only: neither input is modified and every finding is returned.

    Args:
        config: A validated deployment configuration.
        extracted: View of the on-disk wrangler.toml, when one exists.

    Returns:
        Diagnostics in a stable order; empty when nothing was found.
    """
    diagnostics = _check_environments(config)

    if config.next_js_major >= EXPERIMENTAL_NEXTJS_MAJOR:
        diagnostics.append(
            Diagnostic(
                severity="warning",
                code="experimental-nextjs",
                message=(
                    f"Next.js {config.next_js_version} is only experimentally supported "
                    "by the OpenNext.js Cloudflare adapter"
                ),
            )
        )

    if extracted is not None:
        diagnostics.extend(_check_drift(config, extracted))

    logger.debug(f"Consistency check produced {len(diagnostics)} diagnostic(s)")
    return diagnostics
