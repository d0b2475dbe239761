import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import BaseModel

from nextflare.constants import ARTIFACT_FILENAME, DEFAULT_BACKUP_DIR
from nextflare.core.compiler import compile_artifact
from nextflare.core.merge import merge_unknown_sections
from nextflare.models.deployment import DeploymentConfig

__all__ = ["ArtifactWriter", "WriteResult", "backup_file"]


class WriteResult(BaseModel):
    """Outcome of one compile-and-write operation."""

    path: Path
    action: Literal["create", "update"]
    content: str
    backup_path: Path | None = None
    dry_run: bool = False


def backup_file(path: Path, backup_dir: Path) -> Path | None:
    """
    Copy ``path`` into ``backup_dir`` with a timestamp suffix.

    Returns:
        The backup location, or None if ``path`` does not exist.
    """
    if not path.exists():
        return None
    backup_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    backup_path = backup_dir / f"{path.name}.{timestamp}.backup"
    shutil.copy2(path, backup_path)
    logger.info(f"Backed up {path.name} to {backup_path}")
    return backup_path


def _atomic_write(path: Path, content: str) -> None:
    """Write through a sibling temp file so readers see the old or the new file, never half."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ArtifactWriter:
    """Compiles a DeploymentConfig and writes wrangler.toml into a project."""

    def __init__(
        self,
        project_root: Path,
        backup_dir: Path | None = None,
        auto_backup: bool = True,
    ) -> None:
        """
        Initialize the ArtifactWriter.

        Args:
            project_root: Directory that holds (or will hold) wrangler.toml.
            backup_dir: Where previous versions are copied; defaults to ``<root>/.backup``.
            auto_backup: Whether to back up an existing file before replacing it.
        """
        self.project_root = project_root
        self.backup_dir = backup_dir or project_root / DEFAULT_BACKUP_DIR
        self.auto_backup = auto_backup

    @property
    def path(self) -> Path:
        return self.project_root / ARTIFACT_FILENAME

    def render(self, config: DeploymentConfig, merge: bool = False) -> str:
        """
        Produce the text that ``write`` would store, without touching the disk.

        Args:
            config: A validated configuration.
            merge: Keep hand-written sections of the existing file.
        """
        content = compile_artifact(config)
        if merge and self.path.exists():
            content = merge_unknown_sections(content, self.path.read_text(encoding="utf-8"))
        return content

    def write(
        self,
        config: DeploymentConfig,
        merge: bool = False,
        dry_run: bool = False,
    ) -> WriteResult:
        """
        Compile ``config`` and replace wrangler.toml with the result.

        The default is a full overwrite: anything edited by hand is discarded
        unless ``merge`` is set.

        Args:
            config: A validated configuration.
            merge: Keep hand-written sections of the existing file.
            dry_run: Compute the result without backing up or writing.

        Returns:
            A WriteResult describing what was (or would be) written.
        """
        exists = self.path.exists()
        action: Literal["create", "update"] = "update" if exists else "create"
        content = self.render(config, merge=merge)

        if dry_run:
            logger.debug(f"Dry run: would {action} {self.path}")
            return WriteResult(path=self.path, action=action, content=content, dry_run=True)

        backup_path = None
        if exists and self.auto_backup:
            backup_path = backup_file(self.path, self.backup_dir)

        self.project_root.mkdir(parents=True, exist_ok=True)
        _atomic_write(self.path, content)
        logger.info(f"{'Updated' if exists else 'Generated'} {self.path}")
        return WriteResult(path=self.path, action=action, content=content, backup_path=backup_path)
