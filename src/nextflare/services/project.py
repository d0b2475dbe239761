import json
from pathlib import Path
from typing import Any

from loguru import logger

from nextflare.constants import (
    ARTIFACT_FILENAME,
    OPEN_NEXT_CONFIG_FILENAME,
    PACKAGE_JSON_FILENAME,
    PACKAGE_SCRIPTS,
)
from nextflare.core.consistency import check_consistency
from nextflare.core.extractor import extract, extract_open_next_config
from nextflare.exceptions import ArtifactNotFoundError, InvalidProjectFileError
from nextflare.models.artifact import Diagnostic, ExtractedView, OpenNextView
from nextflare.models.deployment import DeploymentConfig
from nextflare.models.report import (
    DependencyStatus,
    NextJsStatus,
    OpenNextStatus,
    ProjectStatus,
    ValidationCheck,
    ValidationReport,
)

__all__ = ["ProjectService"]

ADAPTER_PACKAGE = "@opennextjs/cloudflare"


def _strip_range(version: str) -> str:
    return version.lstrip("^~>=< ")


class ProjectService:
    """Read-side access to a project's descriptor files."""

    def __init__(self, project_root: Path) -> None:
        """
        Initialize the ProjectService.

        Args:
            project_root: Directory containing wrangler.toml and package.json.
        """
        self.project_root = project_root

    @property
    def artifact_path(self) -> Path:
        return self.project_root / ARTIFACT_FILENAME

    @property
    def open_next_config_path(self) -> Path:
        return self.project_root / OPEN_NEXT_CONFIG_FILENAME

    @property
    def package_json_path(self) -> Path:
        return self.project_root / PACKAGE_JSON_FILENAME

    # --- raw files ---

    def read_artifact(self) -> str:
        """
        Read wrangler.toml.

        Raises:
            ArtifactNotFoundError: If the file does not exist.
        """
        if not self.artifact_path.is_file():
            raise ArtifactNotFoundError(self.artifact_path)
        return self.artifact_path.read_text(encoding="utf-8")

    def read_open_next_config(self) -> str | None:
        if not self.open_next_config_path.is_file():
            return None
        return self.open_next_config_path.read_text(encoding="utf-8")

    def read_package_json(self) -> dict[str, Any] | None:
        """
        Read package.json.

        Returns:
            The parsed object, or None if the file does not exist.

        Raises:
            InvalidProjectFileError: If the file exists but is not a JSON object.
        """
        if not self.package_json_path.is_file():
            return None
        try:
            data = json.loads(self.package_json_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise InvalidProjectFileError(self.package_json_path, str(e)) from e
        if not isinstance(data, dict):
            raise InvalidProjectFileError(self.package_json_path, "expected a JSON object")
        return data

    # --- views ---

    def extract_view(self) -> ExtractedView:
        """Extract the known fields of wrangler.toml; raises ArtifactNotFoundError if absent."""
        return extract(self.read_artifact())

    def open_next_view(self) -> OpenNextView | None:
        source = self.read_open_next_config()
        return extract_open_next_config(source) if source is not None else None

    def list_environments(self) -> list[str]:
        """Environment names declared in wrangler.toml, in file order."""
        return list(self.extract_view().environment_names)

    def _dependencies(self, package_json: dict[str, Any]) -> dict[str, str]:
        deps: dict[str, str] = {}
        for section in ("dependencies", "devDependencies"):
            value = package_json.get(section)
            if isinstance(value, dict):
                deps.update({str(k): str(v) for k, v in value.items()})
        return deps

    def status(self) -> ProjectStatus:
        """
        Summarise the project: Next.js version, worker settings, adapter dependencies.

        Missing files degrade to unset fields; nothing here raises for absence.
        """
        try:
            package_json = self.read_package_json()
        except InvalidProjectFileError as e:
            logger.warning(e.message)
            package_json = None
        deps = self._dependencies(package_json) if package_json else {}

        next_version = deps.get("next")
        next_js = NextJsStatus(
            detected=next_version is not None,
            version=_strip_range(next_version) if next_version else None,
        )

        open_next_view = self.open_next_view()
        has_adapter = open_next_view is not None or ADAPTER_PACKAGE in deps
        if self.artifact_path.is_file() and has_adapter:
            view = self.extract_view()
            caching = (open_next_view.caching_strategy if open_next_view else None) or (
                view.caching_strategy
            )
            account_id = view.account_id or (open_next_view.account_id if open_next_view else None)
            open_next = OpenNextStatus(
                configured=True,
                worker_name=view.worker_name,
                account_id=account_id,
                caching_strategy=caching,
                environments=list(view.environment_names),
            )
        else:
            open_next = OpenNextStatus(configured=False)

        dependencies = None
        if package_json is not None:
            dependencies = DependencyStatus(
                opennextjs_cloudflare=deps.get(ADAPTER_PACKAGE),
                wrangler=deps.get("wrangler"),
            )

        return ProjectStatus(next_js=next_js, open_next=open_next, dependencies=dependencies)

    # --- validation report ---

    def _check_project(self, package_json: dict[str, Any] | None) -> ValidationCheck:
        if package_json is None or "next" not in self._dependencies(package_json):
            return ValidationCheck(
                name="Next.js project",
                status="fail",
                message="Not a Next.js project (no 'next' dependency in package.json)",
                fix="Run this command from a Next.js project directory",
            )
        return ValidationCheck(
            name="Next.js project", status="pass", message="Next.js dependency found"
        )

    def _check_artifact(self) -> ValidationCheck:
        try:
            view = self.extract_view()
        except ArtifactNotFoundError:
            return ValidationCheck(
                name="wrangler.toml exists",
                status="fail",
                message="wrangler.toml file not found",
                fix="Run `nextflare generate` to create wrangler.toml",
            )
        if view.worker_name is None:
            return ValidationCheck(
                name="wrangler.toml name",
                status="fail",
                message='wrangler.toml is missing the required "name" field',
                fix='Add name = "your-worker-name" to wrangler.toml',
            )
        if view.account_id is None and not view.environment_names:
            return ValidationCheck(
                name="wrangler.toml account_id",
                status="warning",
                message="wrangler.toml has no account_id (wrangler will ask or use the login)",
                fix='Add account_id = "your-account-id" to wrangler.toml',
            )
        return ValidationCheck(
            name="wrangler.toml", status="pass", message="wrangler.toml has the required fields"
        )

    def _check_open_next_config(self) -> ValidationCheck:
        source = self.read_open_next_config()
        if source is None:
            return ValidationCheck(
                name="open-next.config.ts exists",
                status="fail",
                message="open-next.config.ts file not found",
                fix="Create open-next.config.ts with defineCloudflareConfig()",
            )
        if "export default" not in source:
            return ValidationCheck(
                name="open-next.config.ts export",
                status="fail",
                message="open-next.config.ts has no default export",
                fix="Export the configuration object as the default export",
            )
        return ValidationCheck(
            name="open-next.config.ts", status="pass", message="open-next.config.ts is valid"
        )

    def _check_scripts(self, package_json: dict[str, Any] | None) -> ValidationCheck:
        if package_json is None:
            return ValidationCheck(
                name="package.json exists",
                status="fail",
                message="package.json not found",
                fix="Run this command from a Node.js project directory",
            )
        scripts = package_json.get("scripts") or {}
        missing = [name for name in ("preview", "deploy") if name not in scripts]
        if missing:
            return ValidationCheck(
                name="package.json scripts",
                status="warning",
                message=f"Missing recommended scripts: {', '.join(missing)}",
                fix="Run `nextflare generate --scripts` to add them",
            )
        return ValidationCheck(
            name="package.json scripts", status="pass", message="Required scripts are present"
        )

    def _check_dependencies(self, package_json: dict[str, Any] | None) -> ValidationCheck:
        deps = self._dependencies(package_json) if package_json else {}
        missing = [name for name in (ADAPTER_PACKAGE, "wrangler") if name not in deps]
        if missing:
            return ValidationCheck(
                name="required dependencies",
                status="fail",
                message=f"Missing dependencies: {', '.join(missing)}",
                fix=f"Install: {' '.join(missing)}",
            )
        return ValidationCheck(
            name="required dependencies",
            status="pass",
            message="All required dependencies are installed",
        )

    @staticmethod
    def _check_from_diagnostic(diagnostic: Diagnostic) -> ValidationCheck:
        return ValidationCheck(
            name=diagnostic.code,
            status="fail" if diagnostic.severity == "error" else "warning",
            message=diagnostic.message,
            fix=diagnostic.fix,
        )

    def validation_report(self, config: DeploymentConfig | None = None) -> ValidationReport:
        """
        Check the project files and, when ``config`` is given, its consistency with them.

        Args:
            config: The intended deployment configuration, if known.

        Returns:
            A report listing every check; nothing is raised for findings.
        """
        try:
            package_json = self.read_package_json()
            package_check = None
        except InvalidProjectFileError as e:
            package_json = None
            package_check = ValidationCheck(
                name="package.json syntax", status="fail", message=e.message
            )

        checks = [
            package_check or self._check_project(package_json),
            self._check_artifact(),
            self._check_open_next_config(),
            self._check_scripts(package_json),
            self._check_dependencies(package_json),
        ]

        if config is not None:
            view = self.extract_view() if self.artifact_path.is_file() else None
            checks.extend(
                self._check_from_diagnostic(diagnostic)
                for diagnostic in check_consistency(config, view)
            )

        return ValidationReport(checks=checks)

    # --- package.json scripts ---

    def update_package_scripts(self) -> bool:
        """
        Add the OpenNext.js Cloudflare scripts to package.json.

        Returns:
            True if package.json was updated, False if it does not exist.
        """
        package_json = self.read_package_json()
        if package_json is None:
            logger.warning("package.json not found, skipping script generation")
            return False
        scripts = package_json.get("scripts")
        if not isinstance(scripts, dict):
            scripts = {}
        package_json["scripts"] = {**scripts, **PACKAGE_SCRIPTS}
        self.package_json_path.write_text(
            json.dumps(package_json, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
        logger.info("Updated package.json scripts")
        return True
