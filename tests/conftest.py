import copy
import json
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from nextflare.models.deployment import DeploymentConfig
from nextflare.validation import validate

DEMO_CONFIG: dict[str, Any] = {
    "workerName": "demo",
    "cachingStrategy": "r2-do-queue-tag-cache",
    "database": "d1",
    "imageOptimization": True,
    "analyticsEngine": False,
    "environments": [
        {
            "name": "production",
            "observability": {
                "logs": True,
                "logSamplingRate": 1,
                "traces": False,
                "traceSamplingRate": 0,
                "logpush": False,
            },
        }
    ],
    "nextJsVersion": "14.2.0",
    "compatibilityDate": "2024-09-23",
}


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path_factory, monkeypatch):
    """Keep ~/.nextflare, .env, .nextflare.json and NEXTFLARE_* out of every test."""
    home = tmp_path_factory.mktemp("home")
    workdir = tmp_path_factory.mktemp("cwd")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.chdir(workdir)
    for name in list(os.environ):
        if name.startswith("NEXTFLARE_"):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop sinks bound to streams a CliRunner has already closed."""
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="INFO")


@pytest.fixture
def raw_config() -> dict[str, Any]:
    """A fresh copy of the demo configuration as untyped input."""
    return copy.deepcopy(DEMO_CONFIG)


@pytest.fixture
def make_config(raw_config) -> Callable[..., DeploymentConfig]:
    """Build a validated config from the demo input with top-level overrides."""

    def _make(**overrides: Any) -> DeploymentConfig:
        return validate({**raw_config, **overrides})

    return _make


@pytest.fixture
def demo_config(make_config) -> DeploymentConfig:
    return make_config()


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """A Next.js project with the adapter installed and no wrangler.toml yet."""
    package_json = {
        "name": "demo",
        "scripts": {"dev": "next dev", "build": "next build"},
        "dependencies": {"next": "^14.2.0", "react": "^18.3.0"},
        "devDependencies": {"@opennextjs/cloudflare": "^1.3.0", "wrangler": "^4.20.0"},
    }
    (tmp_path / "package.json").write_text(json.dumps(package_json, indent=2))
    (tmp_path / "open-next.config.ts").write_text(
        'import { defineCloudflareConfig } from "@opennextjs/cloudflare";\n'
        "\n"
        "export default defineCloudflareConfig({\n"
        '  // cachingStrategy: "static-assets",\n'
        '  cachingStrategy: "r2-do-queue-tag-cache",\n'
        "});\n"
    )
    return tmp_path


@pytest.fixture
def make_env() -> Callable[..., dict[str, Any]]:
    """Build an untyped environment entry; keyword arguments override observability."""

    def _make(name: str, role: str | None = None, **observability: Any) -> dict[str, Any]:
        env: dict[str, Any] = {
            "name": name,
            "observability": {
                "logs": True,
                "logSamplingRate": 1,
                "traces": True,
                "traceSamplingRate": 0.1,
                "logpush": False,
                **observability,
            },
        }
        if role is not None:
            env["role"] = role
        return env

    return _make
