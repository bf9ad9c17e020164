"""
Pytest configuration and shared fixtures for DistroKit tests.
"""

from pathlib import Path
from typing import Dict, Optional

import pytest

from distrokit.config.parser import DistroKitConfig
from distrokit.core.directory import DistroLayout
from tests.fixtures.archives import build_tarball_bytes


@pytest.fixture
def home(tmp_path) -> Path:
    """Empty DistroKit home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def layout(home) -> DistroLayout:
    """Yarn layout rooted at the temporary home."""
    return DistroLayout(home, "yarn")


@pytest.fixture
def config(home) -> DistroKitConfig:
    """Configuration pointing at the temporary home and a mock server."""
    return DistroKitConfig(
        home=home,
        servers={"yarn": "https://mock.example.com/yarn"},
        progress=False,
    )


@pytest.fixture
def yarn_tarball():
    """Factory for Yarn tarball bytes for a given version."""

    def factory(version: str = "1.9.4", files: Optional[Dict[str, bytes]] = None):
        return build_tarball_bytes(f"yarn-v{version}", files)

    return factory


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep tests away from the real home directory and server overrides."""
    monkeypatch.delenv("DISTROKIT_HOME", raising=False)
    monkeypatch.delenv("DISTROKIT_YARN_SERVER", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "user-home"))


class RecordingProgress:
    """Progress sink that records every increment."""

    instances = []

    def __init__(self, action, label, total):
        self.action = action
        self.label = label
        self.total = total
        self.position = 0
        self.increments = []
        self.finished = False
        RecordingProgress.instances.append(self)

    def inc(self, delta):
        self.increments.append(delta)
        self.position += delta

    def finish_and_clear(self):
        self.finished = True


@pytest.fixture
def recording_progress():
    """Progress factory that keeps every sink it creates."""
    RecordingProgress.instances = []
    return RecordingProgress
