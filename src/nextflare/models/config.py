from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from nextflare.constants import DEFAULT_BACKUP_DIR, CachingStrategy

__all__ = ["PROJECT_CONFIG_FILENAME", "Config", "global_config_path"]

PROJECT_CONFIG_FILENAME = ".nextflare.json"


def global_config_path() -> Path:
    """Location of the user-wide JSON configuration."""
    return Path.home() / ".nextflare" / "config.json"


class Config(BaseSettings):
    """
    Nextflare tool configuration.

    Sources, highest priority first: init kwargs, ``NEXTFLARE_*`` environment
    variables, ``.env``, the project ``.nextflare.json``, the global
    ``~/.nextflare/config.json``.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEXTFLARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_root: Path = Path(".")
    auto_backup: bool = True
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    default_caching_strategy: CachingStrategy = "r2"
    preserve_unknown_sections: bool = False
    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Later JSON files override earlier ones, so the project file wins.
        json_settings = JsonConfigSettingsSource(
            settings_cls,
            json_file=[global_config_path(), Path(PROJECT_CONFIG_FILENAME)],
        )
        return (init_settings, env_settings, dotenv_settings, json_settings)

    def resolve_backup_dir(self) -> Path:
        """Backup directory, anchored at the project root when relative."""
        if self.backup_dir.is_absolute():
            return self.backup_dir
        return self.project_root / self.backup_dir
