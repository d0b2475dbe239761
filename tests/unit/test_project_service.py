import json

import pytest

from nextflare.constants import PACKAGE_SCRIPTS
from nextflare.core.compiler import compile_artifact
from nextflare.exceptions import ArtifactNotFoundError, InvalidProjectFileError
from nextflare.services.project import ProjectService


@pytest.fixture
def service(project_dir):
    return ProjectService(project_dir)


@pytest.fixture
def configured_project(project_dir, demo_config):
    (project_dir / "wrangler.toml").write_text(compile_artifact(demo_config))
    return project_dir


def _check(report, name):
    return next(check for check in report.checks if check.name == name)


def test_read_artifact_missing(service, project_dir):
    with pytest.raises(ArtifactNotFoundError) as exc_info:
        service.read_artifact()

    assert exc_info.value.exit_code == 3
    assert exc_info.value.path == project_dir / "wrangler.toml"


def test_read_package_json_absent(tmp_path):
    assert ProjectService(tmp_path).read_package_json() is None


def test_read_package_json_invalid(tmp_path):
    (tmp_path / "package.json").write_text("{ not json")

    with pytest.raises(InvalidProjectFileError):
        ProjectService(tmp_path).read_package_json()


def test_list_environments(configured_project):
    assert ProjectService(configured_project).list_environments() == ["production"]


def test_list_environments_without_artifact(service):
    with pytest.raises(ArtifactNotFoundError):
        service.list_environments()


def test_status_of_configured_project(configured_project):
    status = ProjectService(configured_project).status()

    assert status.next_js.detected is True
    assert status.next_js.version == "14.2.0"
    assert status.open_next.configured is True
    assert status.open_next.worker_name == "demo"
    assert status.open_next.caching_strategy == "r2-do-queue-tag-cache"
    assert status.open_next.environments == ["production"]
    assert status.dependencies.opennextjs_cloudflare == "^1.3.0"
    assert status.dependencies.wrangler == "^4.20.0"


def test_status_prefers_open_next_caching_strategy(configured_project):
    (configured_project / "open-next.config.ts").write_text(
        "export default defineCloudflareConfig({ cachingStrategy: 'r2', accountId: 'acc' });\n"
    )

    status = ProjectService(configured_project).status()

    assert status.open_next.caching_strategy == "r2"
    assert status.open_next.account_id == "acc"


def test_status_without_artifact(service):
    status = service.status()

    assert status.next_js.detected is True
    assert status.open_next.configured is False
    assert status.open_next.worker_name is None


def test_status_of_empty_directory(tmp_path):
    status = ProjectService(tmp_path).status()

    assert status.next_js.detected is False
    assert status.open_next.configured is False
    assert status.dependencies is None


def test_status_json_uses_camel_case(configured_project):
    payload = json.loads(
        ProjectService(configured_project).status().model_dump_json(by_alias=True)
    )

    assert payload["nextJs"]["version"] == "14.2.0"
    assert payload["openNext"]["workerName"] == "demo"
    assert payload["dependencies"]["opennextjsCloudflare"] == "^1.3.0"


def test_validation_report_for_configured_project(configured_project):
    service = ProjectService(configured_project)
    service.update_package_scripts()

    report = service.validation_report()

    assert report.valid is True
    assert [check.status for check in report.checks] == ["pass"] * 5


def test_validation_report_flags_missing_files(tmp_path):
    report = ProjectService(tmp_path).validation_report()

    assert report.valid is False
    assert {check.name for check in report.errors} == {
        "Next.js project",
        "wrangler.toml exists",
        "open-next.config.ts exists",
        "package.json exists",
        "required dependencies",
    }


def test_validation_report_warns_about_scripts(configured_project):
    report = ProjectService(configured_project).validation_report()

    check = _check(report, "package.json scripts")
    assert check.status == "warning"
    assert "preview" in check.message
    assert report.valid is True


def test_validation_report_checks_worker_name(configured_project):
    (configured_project / "wrangler.toml").write_text('main = ".open-next/worker.js"\n')

    check = _check(ProjectService(configured_project).validation_report(), "wrangler.toml name")

    assert check.status == "fail"


def test_validation_report_includes_diagnostics(configured_project, make_config):
    config = make_config(database="hyperdrive")

    report = ProjectService(configured_project).validation_report(config)

    missing = _check(report, "missing-database-binding")
    assert missing.status == "fail"
    assert _check(report, "unexpected-database-binding").status == "warning"
    assert report.valid is False


def test_validation_report_with_config_and_no_artifact(service, demo_config):
    report = service.validation_report(demo_config)

    assert [check.name for check in report.checks][-1] == "required dependencies"


def test_validation_report_for_invalid_package_json(tmp_path):
    (tmp_path / "package.json").write_text("[]")

    report = ProjectService(tmp_path).validation_report()

    assert report.checks[0].name == "package.json syntax"
    assert report.checks[0].status == "fail"


def test_update_package_scripts(service, project_dir):
    assert service.update_package_scripts() is True

    scripts = json.loads((project_dir / "package.json").read_text())["scripts"]
    assert scripts["dev"] == "next dev"
    for name, command in PACKAGE_SCRIPTS.items():
        assert scripts[name] == command


def test_update_package_scripts_without_package_json(tmp_path):
    assert ProjectService(tmp_path).update_package_scripts() is False
    assert not (tmp_path / "package.json").exists()
