"""Pytest configuration and shared fixtures."""

import shutil
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def clear_wayfinder_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment overrides out of test runs."""
    monkeypatch.delenv("WF_CONTENT_DIR", raising=False)
    monkeypatch.delenv("WF_STRICT", raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixture_content_dir(project_root: Path) -> Path:
    """Return the read-only sample content directory."""
    return project_root / "tests" / "fixtures" / "content"


@pytest.fixture
def content_dir(fixture_content_dir: Path, tmp_path: Path) -> Path:
    """Return a writable copy of the sample content directory."""
    target = tmp_path / "content"
    shutil.copytree(fixture_content_dir, target)
    return target
