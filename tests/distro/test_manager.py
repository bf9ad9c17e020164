"""
Unit tests for DistroManager.
"""

from unittest.mock import patch

import pytest
import responses

from distrokit.core.exceptions import ConfigError, DistroKitError, DownloadError
from distrokit.core.inventory import InventoryRegistry
from distrokit.core.progress import progress_bar, silent_progress
from distrokit.core.version import Version
from distrokit.distro import AlreadyInstalled, Installed
from distrokit.distro.manager import DistroManager

MOCK_URL = "https://mock.example.com/yarn/yarn-v1.9.4.tar.gz"
MIRROR_URL = "https://mirror.example.com/archives/yarn-1.9.4.tgz"


@pytest.fixture
def manager(config):
    """Yarn manager using the temporary home and mock server."""
    return DistroManager("yarn", config=config)


class TestDistroManagerInit:
    """Test DistroManager construction."""

    def test_unknown_tool(self, config):
        with pytest.raises(DistroKitError, match="Unknown tool: pnpm"):
            DistroManager("pnpm", config=config)

    def test_layout_and_registry(self, manager, home):
        assert manager.layout.home == home
        assert manager.registry.registry_path == home / "registry.json"

    def test_progress_follows_config(self, config):
        assert DistroManager("yarn", config=config).progress_factory is silent_progress
        config.progress = True
        assert DistroManager("yarn", config=config).progress_factory is progress_bar

    def test_loads_config_by_default(self, monkeypatch, home):
        monkeypatch.setenv("DISTROKIT_HOME", str(home))
        assert DistroManager().config.home == home


class TestDistroManagerInstall:
    """Test install orchestration."""

    @responses.activate
    def test_install_public_registers(self, manager, yarn_tarball):
        """Test a fresh install is fetched, unpacked and recorded."""
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)

        outcome = manager.install("1.9.4")

        assert outcome == Installed(Version.parse("1.9.4"))
        assert manager.is_installed("1.9.4")
        entry = manager.registry.get_entry("yarn", Version.parse("1.9.4"))
        assert entry["source_url"] == MOCK_URL
        assert (manager.layout.image_dir("1.9.4") / "bin" / "yarn").is_file()

    @responses.activate
    def test_install_twice_skips_network(self, manager, yarn_tarball):
        """Test the second install neither downloads nor unpacks."""
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)
        manager.install("1.9.4")

        with patch("distrokit.distro.manager.DistroManager.provision") as mock_provision:
            outcome = manager.install("1.9.4")

        assert outcome == AlreadyInstalled(Version.parse("1.9.4"))
        mock_provision.assert_not_called()
        assert len(responses.calls) == 1

    @responses.activate
    def test_install_from_url(self, manager, yarn_tarball):
        responses.add(responses.GET, MIRROR_URL, body=yarn_tarball(), status=200)

        outcome = manager.install("1.9.4", url=MIRROR_URL)

        assert isinstance(outcome, Installed)
        assert responses.calls[0].request.url == MIRROR_URL
        # Cached under the conventional name regardless of the URL
        assert manager.layout.distro_file("1.9.4").is_file()

    def test_install_from_file(self, manager, tmp_path, yarn_tarball):
        archive = tmp_path / "yarn.tar.gz"
        archive.write_bytes(yarn_tarball())

        outcome = manager.install("1.9.4", file=archive)

        assert isinstance(outcome, Installed)
        assert manager.registry.get_entry("yarn", Version.parse("1.9.4"))["source_url"] is None

    def test_url_and_file_exclusive(self, manager, tmp_path):
        with pytest.raises(ValueError, match="at most one"):
            manager.install("1.9.4", url=MOCK_URL, file=tmp_path / "x.tar.gz")

    @responses.activate
    def test_failed_download_not_registered(self, manager):
        responses.add(responses.GET, MOCK_URL, status=500)

        with pytest.raises(DownloadError):
            manager.install("1.9.4")

        assert not manager.is_installed("1.9.4")
        assert not manager.registry.registry_path.exists()

    def test_invalid_version(self, manager):
        with pytest.raises(DistroKitError):
            manager.install("not-a-version")

    def test_missing_server(self, config, home):
        config.servers = {}
        manager = DistroManager("yarn", config=config)
        with pytest.raises(ConfigError, match="No server configured"):
            manager.install("1.9.4")

    def test_custom_registry(self, config, tmp_path, yarn_tarball):
        registry = InventoryRegistry(tmp_path / "elsewhere" / "registry.json")
        manager = DistroManager("yarn", config=config, registry=registry)
        archive = tmp_path / "yarn.tar.gz"
        archive.write_bytes(yarn_tarball())

        manager.install("1.9.4", file=archive)

        assert registry.registry_path.exists()


class TestDistroManagerFetch:
    """Test fetch and listing."""

    @responses.activate
    def test_fetch_caches_without_installing(self, manager, yarn_tarball):
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)

        cached = manager.fetch("1.9.4")

        assert cached == manager.layout.distro_file("1.9.4")
        assert cached.is_file()
        assert not manager.layout.image_root_dir.exists()
        assert len(manager.installed_versions()) == 0

    @responses.activate
    def test_fetch_reuses_cache(self, manager, yarn_tarball):
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)

        manager.fetch("1.9.4")
        manager.fetch("1.9.4")

        assert len(responses.calls) == 1

    def test_installed_versions_sorted(self, manager, tmp_path, yarn_tarball):
        for text in ["1.10.0", "1.9.4"]:
            archive = tmp_path / f"yarn-{text}.tar.gz"
            archive.write_bytes(yarn_tarball(version=text))
            manager.install(text, file=archive)

        assert [str(v) for v in manager.installed_versions()] == ["1.9.4", "1.10.0"]
