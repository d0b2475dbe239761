"""Render a DeploymentConfig into wrangler.toml text."""

import json
from collections.abc import Callable

from nextflare.constants import (
    ASSETS_DIRECTORY,
    BINDINGS,
    COMPATIBILITY_FLAGS,
    PLACEHOLDERS,
    WORKER_MAIN,
)
from nextflare.core.resolver import Section, SectionSet, resolve
from nextflare.models.deployment import DeploymentConfig, ObservabilityConfig

__all__ = ["compile_artifact", "format_bool", "format_number", "format_string"]


def format_string(value: str) -> str:
    """TOML basic string. JSON escaping is a valid subset."""
    return json.dumps(value, ensure_ascii=False)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_number(value: float) -> str:
    """Render integral values without a trailing ``.0`` (``1`` rather than ``1.0``)."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _header(config: DeploymentConfig) -> str:
    flags = ", ".join(format_string(flag) for flag in COMPATIBILITY_FLAGS)
    logpush = any(env.observability.logpush for env in config.environments)
    return (
        f"name = {format_string(config.worker_name)}\n"
        f"main = {format_string(WORKER_MAIN)}\n"
        f"compatibility_date = {format_string(config.compatibility_date)}\n"
        f"compatibility_flags = [{flags}]\n"
        f"logpush = {format_bool(logpush)}\n"
        "\n"
    )


def _assets(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Static assets binding - required for OpenNext.js Cloudflare\n"
        "[assets]\n"
        f"directory = {format_string(ASSETS_DIRECTORY)}\n"
        f"binding = {format_string(BINDINGS.assets)}\n"
        "run_worker_first = false\n"
    )


def _service_self_reference(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Service binding - self reference required for ISR revalidation and res.revalidate\n"
        "[[services]]\n"
        f"binding = {format_string(BINDINGS.self_reference)}\n"
        f"service = {format_string(config.worker_name)}\n"
    )


def _cache_bucket(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# R2 bucket for incremental cache (ISR/SSG pages)\n"
        "[[r2_buckets]]\n"
        f"binding = {format_string(BINDINGS.cache_bucket)}\n"
        f"bucket_name = {format_string(config.worker_name + '-cache')}\n"
    )


def _durable_object(comment: str, name: str, class_name: str) -> str:
    return (
        f"# {comment}\n"
        "[[durable_objects.bindings]]\n"
        f"name = {format_string(name)}\n"
        f"class_name = {format_string(class_name)}\n"
    )


def _queue(config: DeploymentConfig, sections: SectionSet) -> str:
    return _durable_object("Durable Object for queue", BINDINGS.queue, BINDINGS.queue_class)


def _tag_cache(config: DeploymentConfig, sections: SectionSet) -> str:
    return _durable_object(
        "Durable Object for tag cache", BINDINGS.tag_cache, BINDINGS.tag_cache_class
    )


def _d1(config: DeploymentConfig, sections: SectionSet) -> str:
    database_name = f"{config.worker_name}-db"
    return (
        "# D1 database binding\n"
        "# Create the database, then replace database_id with its id:\n"
        f"#   wrangler d1 create {database_name}\n"
        "[[d1_databases]]\n"
        f"binding = {format_string(BINDINGS.d1)}\n"
        f"database_name = {format_string(database_name)}\n"
        f"database_id = {format_string(PLACEHOLDERS['d1'])}\n"
    )


def _hyperdrive(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Hyperdrive binding for PostgreSQL acceleration\n"
        "# Create the configuration, then replace id with its id:\n"
        f"#   wrangler hyperdrive create {config.worker_name}-hyperdrive"
        ' --connection-string "postgresql://..."\n'
        "[[hyperdrive]]\n"
        f"binding = {format_string(BINDINGS.hyperdrive)}\n"
        f"id = {format_string(PLACEHOLDERS['hyperdrive'])}\n"
    )


def _images(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Image optimization binding (Cloudflare Images)\n"
        "[images]\n"
        f"binding = {format_string(BINDINGS.images)}\n"
    )


def _analytics(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Analytics Engine binding\n"
        "[[analytics_engine_datasets]]\n"
        f"binding = {format_string(BINDINGS.analytics)}\n"
    )


def _observability_tables(prefix: str, observability: ObservabilityConfig) -> str:
    log_rate = format_number(observability.log_sampling_rate)
    trace_rate = format_number(observability.trace_sampling_rate)
    return (
        f"[{prefix}observability]\n"
        "enabled = true\n"
        f"head_sampling_rate = {log_rate}\n"
        "\n"
        f"[{prefix}observability.logs]\n"
        f"enabled = {format_bool(observability.logs)}\n"
        f"head_sampling_rate = {log_rate}\n"
        "invocation_logs = true\n"
        "persist = true\n"
        "\n"
        f"[{prefix}observability.traces]\n"
        f"enabled = {format_bool(observability.traces)}\n"
        f"head_sampling_rate = {trace_rate}\n"
        "persist = true\n"
    )


def _observability(config: DeploymentConfig, sections: SectionSet) -> str:
    if sections.development is None:
        raise ValueError("Observability section requires a development environment")
    return (
        "# Observability (development environment)\n"
        + _observability_tables("", sections.development.observability)
    )


def _production(config: DeploymentConfig, sections: SectionSet) -> str:
    if sections.production is None:
        raise ValueError("Production section requires a production environment")
    return (
        "# Production environment\n"
        "[env.production]\n"
        f"compatibility_date = {format_string(config.compatibility_date)}\n"
        "\n" + _observability_tables("env.production.", sections.production.observability)
    )


def _placement(config: DeploymentConfig, sections: SectionSet) -> str:
    return (
        "# Smart placement - automatically positions Worker in optimal data center\n"
        "[placement]\n"
        'mode = "smart"\n'
    )


_RENDERERS: dict[Section, Callable[[DeploymentConfig, SectionSet], str]] = {
    Section.ASSETS: _assets,
    Section.SERVICE_SELF_REFERENCE: _service_self_reference,
    Section.CACHE_BUCKET: _cache_bucket,
    Section.QUEUE: _queue,
    Section.TAG_CACHE: _tag_cache,
    Section.D1: _d1,
    Section.HYPERDRIVE: _hyperdrive,
    Section.IMAGES: _images,
    Section.ANALYTICS: _analytics,
    Section.OBSERVABILITY: _observability,
    Section.PRODUCTION: _production,
    Section.PLACEMENT: _placement,
}


def compile_artifact(config: DeploymentConfig, sections: SectionSet | None = None) -> str:
    """
    Compile ``config`` into wrangler.toml text.

    Deterministic: the same config always yields byte-identical output. Sections
    are emitted in ``Section`` declaration order regardless of the order they
    appear in ``sections``.

    Args:
        config: A validated deployment configuration.
        sections: Pre-resolved sections; resolved from ``config`` when omitted.

    Returns:
        The artifact text, terminated by a single newline.
    """
    if sections is None:
        sections = resolve(config)
    blocks = [_RENDERERS[section](config, sections) for section in Section if section in sections]
    return _header(config) + "\n".join(blocks)
