from dataclasses import dataclass
from typing import Literal

__all__ = [
    "ARTIFACT_FILENAME",
    "ASSETS_DIRECTORY",
    "CACHING_LADDER",
    "COMPATIBILITY_FLAGS",
    "DEFAULT_BACKUP_DIR",
    "EXPERIMENTAL_NEXTJS_MAJOR",
    "OPEN_NEXT_CONFIG_FILENAME",
    "PACKAGE_JSON_FILENAME",
    "PACKAGE_SCRIPTS",
    "PLACEHOLDERS",
    "WORKER_MAIN",
    "BindingNames",
    "BINDINGS",
    "CachingStrategy",
    "DatabaseOption",
    "EnvironmentRole",
]

# Project files
ARTIFACT_FILENAME = "wrangler.toml"
OPEN_NEXT_CONFIG_FILENAME = "open-next.config.ts"
PACKAGE_JSON_FILENAME = "package.json"
DEFAULT_BACKUP_DIR = ".backup"

# Caching tiers, lowest first. Every tier needs the bindings of the ones before it.
CachingStrategy = Literal["static-assets", "r2", "r2-do-queue", "r2-do-queue-tag-cache"]
CACHING_LADDER: tuple[CachingStrategy, ...] = (
    "static-assets",
    "r2",
    "r2-do-queue",
    "r2-do-queue-tag-cache",
)

DatabaseOption = Literal["none", "hyperdrive", "d1"]

EnvironmentRole = Literal["development", "production", "custom"]

# Cloudflare
WORKER_MAIN = ".open-next/worker.js"
ASSETS_DIRECTORY = ".open-next/assets"
COMPATIBILITY_FLAGS: tuple[str, ...] = ("nodejs_compat", "global_fetch_strictly_public")

# Next.js majors at or above this are only experimentally supported by the adapter.
EXPERIMENTAL_NEXTJS_MAJOR = 16


@dataclass(frozen=True)
class BindingNames:
    """Binding identifiers the OpenNext.js Cloudflare adapter expects at runtime."""

    assets: str = "ASSETS"
    self_reference: str = "WORKER_SELF_REFERENCE"
    cache_bucket: str = "NEXT_INC_CACHE_R2_BUCKET"
    queue: str = "NEXT_QUEUE"
    queue_class: str = "Queue"
    tag_cache: str = "NEXT_TAG_CACHE"
    tag_cache_class: str = "TagCache"
    d1: str = "DB"
    hyperdrive: str = "HYPERDRIVE"
    images: str = "IMAGES"
    analytics: str = "ANALYTICS"


BINDINGS = BindingNames()

# Sentinels for identifiers that only exist after `wrangler ... create`.
PLACEHOLDERS: dict[str, str] = {
    "d1": "YOUR_DATABASE_ID_HERE",
    "hyperdrive": "YOUR_HYPERDRIVE_ID_HERE",
}

PACKAGE_SCRIPTS: dict[str, str] = {
    "preview": "opennextjs-cloudflare build && opennextjs-cloudflare preview",
    "deploy": "opennextjs-cloudflare build && opennextjs-cloudflare deploy",
    "upload": "opennextjs-cloudflare build && opennextjs-cloudflare upload",
    "cf-typegen": "wrangler types --env-interface CloudflareEnv cloudflare-env.d.ts",
}
