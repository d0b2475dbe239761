"""Feature matrix: which wrangler.toml sections a configuration needs."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from nextflare.constants import CACHING_LADDER, CachingStrategy
from nextflare.models.deployment import DeploymentConfig, EnvironmentConfig

__all__ = [
    "CACHE_SECTION_TIERS",
    "Section",
    "SectionSet",
    "cache_sections_for",
    "resolve",
]


class Section(Enum):
    """Output sections. Declaration order is emission order."""

    ASSETS = "assets"
    SERVICE_SELF_REFERENCE = "services"
    CACHE_BUCKET = "r2_buckets"
    QUEUE = "durable_objects.queue"
    TAG_CACHE = "durable_objects.tag_cache"
    D1 = "d1_databases"
    HYPERDRIVE = "hyperdrive"
    IMAGES = "images"
    ANALYTICS = "analytics_engine_datasets"
    OBSERVABILITY = "observability"
    PRODUCTION = "env.production"
    PLACEMENT = "placement"


# Lowest caching tier that needs each cache section. A new tier is one more entry here.
CACHE_SECTION_TIERS: dict[Section, CachingStrategy] = {
    Section.SERVICE_SELF_REFERENCE: "r2",
    Section.CACHE_BUCKET: "r2",
    Section.QUEUE: "r2-do-queue",
    Section.TAG_CACHE: "r2-do-queue-tag-cache",
}


def cache_sections_for(strategy: CachingStrategy) -> tuple[Section, ...]:
    """Cache sections required by ``strategy``, in emission order."""
    tier = CACHING_LADDER.index(strategy)
    return tuple(
        section
        for section, minimum in CACHE_SECTION_TIERS.items()
        if tier >= CACHING_LADDER.index(minimum)
    )


@dataclass(frozen=True)
class SectionSet:
    """Resolved sections plus the environments that feed the environment blocks."""

    sections: tuple[Section, ...]
    development: EnvironmentConfig | None = None
    production: EnvironmentConfig | None = None

    def __contains__(self, section: object) -> bool:
        return section in self.sections

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)


def resolve(config: DeploymentConfig) -> SectionSet:
    """
    Decide which sections the artifact for ``config`` contains.

    Pure and total: ``config`` is already validated.
    """
    cache_sections = set(cache_sections_for(config.caching_strategy))
    development = config.environment_for("development")
    production = config.environment_for("production")

    included: dict[Section, bool] = {
        Section.ASSETS: True,
        Section.SERVICE_SELF_REFERENCE: Section.SERVICE_SELF_REFERENCE in cache_sections,
        Section.CACHE_BUCKET: Section.CACHE_BUCKET in cache_sections,
        Section.QUEUE: Section.QUEUE in cache_sections,
        Section.TAG_CACHE: Section.TAG_CACHE in cache_sections,
        Section.D1: config.database == "d1",
        Section.HYPERDRIVE: config.database == "hyperdrive",
        Section.IMAGES: config.image_optimization,
        Section.ANALYTICS: config.analytics_engine,
        Section.OBSERVABILITY: development is not None,
        Section.PRODUCTION: production is not None,
        Section.PLACEMENT: True,
    }

    sections = tuple(section for section in Section if included[section])
    logger.debug(f"Resolved sections: {[section.value for section in sections]}")
    return SectionSet(sections=sections, development=development, production=production)
