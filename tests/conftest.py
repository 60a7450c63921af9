"""
Pytest configuration and shared fixtures for capupdate tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
import shutil
from typing import Any

import pytest
import yaml

from capupdate.images import ImageReference
from capupdate.io import Throttle
from capupdate.logging import SilentLogger, set_global_logger
from capupdate.sources.base import LatestVersion


@pytest.fixture(autouse=True)
def silent_logger():
    """Reset the global logger so CLI tests do not leak output settings."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def fixtures_dir() -> Path:
    """Provide path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def apps_dir(fixtures_dir: Path, tmp_test_dir: Path) -> Path:
    """
    Provide a writable copy of the fixture template catalog.

    Contains wordpress.yml (templated image), ghost.yml (literal image),
    jupyter-lab.yml (no image) and supabase-postgres.yml (no main service).
    """
    target = tmp_test_dir / "apps"
    shutil.copytree(fixtures_dir / "apps", target)
    return target


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def create_text_file(tmp_test_dir: Path):
    """
    Factory fixture for writing raw template text (keeps $$ and quoting intact).
    """

    def _create(filename: str, text: str) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _create


class FixedClock:
    """Settable clock returning timezone-aware datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FixedClock:
    """Provide a clock frozen at 2025-01-01T12:00:00Z."""
    return FixedClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def no_throttle() -> Throttle:
    """Provide a throttle that never sleeps."""
    return Throttle(delay=0)


class FakeSource:
    """
    In-memory lookup source.

    versions maps an image full name (e.g. "library/wordpress") to the
    latest version, or to an exception instance to raise.
    """

    def __init__(self, name: str, versions: dict[str, Any]):
        self.name = name
        self.versions = versions
        self.calls: list[str] = []

    def lookup_key(self, image: ImageReference) -> str | None:
        return image.full_name

    def latest_version(self, image: ImageReference) -> LatestVersion | None:
        self.calls.append(image.full_name)
        value = self.versions.get(image.full_name)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return None
        return LatestVersion(
            version=value,
            source=self.name,
            versions=[value],
            release_url=f"https://example.com/{self.name}/{value}",
        )


@pytest.fixture
def fake_source():
    """Factory fixture for FakeSource instances."""

    def _create(name: str, versions: dict[str, Any]) -> FakeSource:
        return FakeSource(name, versions)

    return _create
