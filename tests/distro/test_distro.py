"""
Unit tests for distro provisioning and installation.
"""

import pytest
import responses

from distrokit.core.directory import DistroLayout
from distrokit.core.exceptions import DistroIOError, DistroKitError, DownloadError
from distrokit.core.inventory import VersionCollection
from distrokit.core.progress import Action, silent_progress
from distrokit.core.version import Version
from distrokit.distro import (
    AlreadyInstalled,
    Installed,
    YarnDistro,
    distro_is_valid,
    public_yarn_server_root,
)
from distrokit.config.parser import PUBLIC_YARN_SERVER_ROOT
from tests.fixtures.archives import build_zip_with_method

MOCK_ROOT = "https://mock.example.com/yarn"
MOCK_URL = f"{MOCK_ROOT}/yarn-v1.9.4.tar.gz"


def mock_root():
    return MOCK_ROOT


@pytest.fixture
def cached_tarball(layout, yarn_tarball):
    """Valid Yarn 1.9.4 tarball already in the cache."""
    path = layout.distro_file("1.9.4")
    path.parent.mkdir(parents=True)
    path.write_bytes(yarn_tarball())
    return path


class TestDistroIsValid:
    """Test the cached archive validity check."""

    def test_missing(self, layout):
        assert distro_is_valid(layout.distro_file("1.9.4")) is False

    def test_zero_bytes(self, tmp_path):
        path = tmp_path / "yarn-v1.9.4.tar.gz"
        path.write_bytes(b"")
        assert distro_is_valid(path) is False

    def test_truncated(self, tmp_path, yarn_tarball):
        path = tmp_path / "yarn-v1.9.4.tar.gz"
        data = yarn_tarball()
        path.write_bytes(data[: len(data) - 100])
        assert distro_is_valid(path) is False

    def test_directory(self, tmp_path):
        assert distro_is_valid(tmp_path) is False

    def test_valid(self, cached_tarball):
        assert distro_is_valid(cached_tarball) is True

    def test_zip_unsupported_compression(self, tmp_path):
        """Test a zip using an unknown compression method is just invalid."""
        path = tmp_path / "yarn-v1.9.4.zip"
        path.write_bytes(build_zip_with_method("yarn-v1.9.4", 99))
        assert distro_is_valid(path) is False


class TestPublicServerRoot:
    """Test the public distributor root."""

    def test_default(self):
        assert public_yarn_server_root() == PUBLIC_YARN_SERVER_ROOT
        assert YarnDistro.public_server_root() == PUBLIC_YARN_SERVER_ROOT

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DISTROKIT_YARN_SERVER", "http://localhost:8080")
        assert YarnDistro.public_server_root() == "http://localhost:8080"


class TestProvisioning:
    """Test the public, remote and local constructors."""

    @responses.activate
    def test_public_fetches_and_caches(self, layout, yarn_tarball):
        """Test public provisioning requests the conventional file name."""
        body = yarn_tarball()
        responses.add(responses.GET, MOCK_URL, body=body, status=200)

        distro = YarnDistro.public(
            "1.9.4",
            server_root=mock_root,
            layout=layout,
            progress_factory=silent_progress,
        )

        assert len(responses.calls) == 1
        assert responses.calls[0].request.url.endswith("/yarn-v1.9.4.tar.gz")
        assert distro.version == Version.parse("1.9.4")
        assert distro.source_url == MOCK_URL
        assert layout.distro_file("1.9.4").read_bytes() == body
        distro.archive.close()

    @responses.activate
    def test_public_uses_env_server(self, monkeypatch, layout, yarn_tarball):
        """Test the environment override feeds the public path."""
        monkeypatch.setenv("DISTROKIT_YARN_SERVER", MOCK_ROOT + "/")
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)

        distro = YarnDistro.public("1.9.4", layout=layout, progress_factory=silent_progress)

        assert len(responses.calls) == 1
        distro.archive.close()

    @responses.activate
    def test_remote_uses_valid_cache(self, layout, cached_tarball):
        """Test a valid cached archive means no network access."""
        distro = YarnDistro.remote("1.9.4", MOCK_URL, layout=layout)

        assert len(responses.calls) == 0
        assert distro.source_url is None
        distro.archive.close()

    @responses.activate
    def test_remote_replaces_corrupt_cache(self, layout, cached_tarball, yarn_tarball):
        """Test a corrupt cached archive is downloaded again."""
        cached_tarball.write_bytes(b"garbage")
        body = yarn_tarball()
        responses.add(responses.GET, MOCK_URL, body=body, status=200)

        distro = YarnDistro.remote(
            "1.9.4", MOCK_URL, layout=layout, progress_factory=silent_progress
        )

        assert len(responses.calls) == 1
        assert cached_tarball.read_bytes() == body
        distro.archive.close()

    @responses.activate
    def test_remote_http_error(self, layout):
        """Test a failed download names the version."""
        responses.add(responses.GET, MOCK_URL, status=404)

        with pytest.raises(DownloadError) as exc_info:
            YarnDistro.remote("1.9.4", MOCK_URL, layout=layout)

        assert exc_info.value.version == "1.9.4"
        assert "Could not download version 1.9.4" in str(exc_info.value)
        assert not layout.distro_file("1.9.4").exists()

    @responses.activate
    def test_remote_bad_content(self, layout):
        """Test content that does not parse is a download error."""
        responses.add(responses.GET, MOCK_URL, body=b"<html>oops</html>", status=200)

        with pytest.raises(DownloadError):
            YarnDistro.remote("1.9.4", MOCK_URL, layout=layout, progress_factory=silent_progress)

    @responses.activate
    def test_remote_reports_fetch_progress(self, layout, yarn_tarball, recording_progress):
        """Test downloads report against a Fetching sink."""
        body = yarn_tarball()
        responses.add(
            responses.GET,
            MOCK_URL,
            body=body,
            status=200,
            headers={"content-length": str(len(body))},
        )

        distro = YarnDistro.remote(
            "1.9.4", MOCK_URL, layout=layout, progress_factory=recording_progress
        )
        distro.archive.close()

        (sink,) = recording_progress.instances
        assert sink.action is Action.FETCHING
        assert sink.label == "v1.9.4"
        assert sink.position == len(body)
        assert sink.finished

    def test_local_corrupt(self, tmp_path, layout):
        """Test a local file that does not parse."""
        path = tmp_path / "yarn-v1.9.4.tar.gz"
        path.write_bytes(b"not a tarball at all, not even close")
        with pytest.raises(DistroIOError, match="Could not load yarn 1.9.4"):
            YarnDistro.local("1.9.4", path, layout=layout)

    def test_local_missing(self, tmp_path, layout):
        with pytest.raises(DistroIOError):
            YarnDistro.local("1.9.4", tmp_path / "missing.tar.gz", layout=layout)

    def test_local_zip_unsupported_compression(self, tmp_path, layout):
        """Test an unreadable zip member surfaces as DistroIOError."""
        path = tmp_path / "yarn-v1.9.4.zip"
        path.write_bytes(build_zip_with_method("yarn-v1.9.4", 99))
        with pytest.raises(DistroIOError, match="Invalid zip archive"):
            YarnDistro.local("1.9.4", path, layout=layout)

    def test_local_from_open_file(self, cached_tarball, layout):
        """Test an open handle is accepted and owned by the distro."""
        handle = open(cached_tarball, "rb")
        distro = YarnDistro.local("1.9.4", handle, layout=layout)

        distro.install(VersionCollection(), progress_factory=silent_progress)

        assert handle.closed

    def test_repr(self, cached_tarball, layout):
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)
        assert repr(distro) == "YarnDistro(version='1.9.4')"
        distro.archive.close()


class TestInstall:
    """Test Distro.install."""

    def test_already_installed_writes_nothing(self, cached_tarball, layout):
        """Test a version in the collection is left alone."""
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)
        collection = VersionCollection([Version.parse("1.9.4")])

        outcome = distro.install(collection, progress_factory=silent_progress)

        assert outcome == AlreadyInstalled(Version.parse("1.9.4"))
        assert not layout.image_root_dir.exists()

    def test_installed_promotes(self, cached_tarball, layout):
        """Test the extracted tree lands in the version directory."""
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)

        outcome = distro.install(VersionCollection(), progress_factory=silent_progress)

        assert outcome == Installed(Version.parse("1.9.4"))
        final = layout.image_dir("1.9.4")
        assert (final / "bin" / "yarn").read_bytes() == b"#!/bin/sh\necho yarn\n"
        assert (final / "package.json").is_file()
        assert not (layout.image_root_dir / "yarn-v1.9.4").exists()

    def test_other_versions_do_not_block(self, cached_tarball, layout):
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)
        collection = VersionCollection([Version.parse("1.9.3"), Version.parse("1.10.0")])

        outcome = distro.install(collection, progress_factory=silent_progress)

        assert isinstance(outcome, Installed)

    def test_install_progress_matches_uncompressed_size(
        self, cached_tarball, layout, recording_progress
    ):
        """Test every extracted byte is reported against the unpacked total."""
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)
        expected = distro.archive.uncompressed_size()

        distro.install(VersionCollection(), progress_factory=recording_progress)

        (sink,) = recording_progress.instances
        assert sink.action is Action.INSTALLING
        assert sink.label == "v1.9.4"
        assert sink.total == expected
        assert sum(sink.increments) == expected
        assert sink.finished

    def test_failed_extraction_leaves_no_final_directory(self, cached_tarball, layout):
        """Test an interrupted unpack never produces the version directory."""
        cleared = []

        class FailingSink:
            def __init__(self, action, label, total):
                self.seen = 0

            def inc(self, delta):
                self.seen += delta
                if self.seen > 1024:
                    raise OSError("No space left on device")

            def finish_and_clear(self):
                cleared.append(self)

        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)

        with pytest.raises(DistroIOError, match="Failed to unpack yarn 1.9.4"):
            distro.install(VersionCollection(), progress_factory=FailingSink)

        assert not layout.image_dir("1.9.4").exists()
        assert distro.archive._fileobj.closed
        assert len(cleared) == 1

    def test_wrong_root_directory(self, tmp_path, layout, yarn_tarball):
        """Test an archive whose root does not match the version fails promotion."""
        path = tmp_path / "yarn-v1.9.4.tar.gz"
        path.write_bytes(yarn_tarball(version="1.9.3"))
        distro = YarnDistro.local("1.9.4", path, layout=layout)

        with pytest.raises(DistroIOError, match="Failed to move"):
            distro.install(VersionCollection(), progress_factory=silent_progress)

        assert not layout.image_dir("1.9.4").exists()

    def test_failed_promotion_clears_progress(
        self, tmp_path, layout, yarn_tarball, recording_progress
    ):
        """Test the installing sink is cleared when promotion fails."""
        path = tmp_path / "yarn-v1.9.4.tar.gz"
        path.write_bytes(yarn_tarball(version="1.9.3"))
        distro = YarnDistro.local("1.9.4", path, layout=layout)

        with pytest.raises(DistroIOError):
            distro.install(VersionCollection(), progress_factory=recording_progress)

        (sink,) = recording_progress.instances
        assert sink.finished

    def test_install_twice_rejected(self, cached_tarball, layout):
        distro = YarnDistro.local("1.9.4", cached_tarball, layout=layout)
        distro.install(VersionCollection(), progress_factory=silent_progress)

        with pytest.raises(DistroKitError, match="already consumed"):
            distro.install(VersionCollection(), progress_factory=silent_progress)


class TestEndToEnd:
    """Full provisioning scenarios."""

    @responses.activate
    def test_public_then_install(self, layout, yarn_tarball):
        """Test fetching 1.9.4 from the public path and installing it."""
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)

        distro = YarnDistro.public(
            "1.9.4", server_root=mock_root, layout=layout, progress_factory=silent_progress
        )
        outcome = distro.install(VersionCollection(), progress_factory=silent_progress)

        assert outcome == Installed(Version.parse("1.9.4"))
        assert layout.distro_file("1.9.4").is_file()
        assert (layout.image_dir("1.9.4") / "bin" / "yarn").is_file()

        # A second provisioning reuses the cache and installs nothing
        again = YarnDistro.public(
            "1.9.4", server_root=mock_root, layout=layout, progress_factory=silent_progress
        )
        collection = VersionCollection([Version.parse("1.9.4")])
        assert isinstance(again.install(collection), AlreadyInstalled)
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetched_file_loads_locally(self, layout, tmp_path, yarn_tarball):
        """Test a fetched cache file installs the same tree via the local path."""
        responses.add(responses.GET, MOCK_URL, body=yarn_tarball(), status=200)
        remote = YarnDistro.remote(
            "1.9.4", MOCK_URL, layout=layout, progress_factory=silent_progress
        )
        remote.archive.close()

        other = tmp_path / "other-home"
        other_layout = DistroLayout(other, "yarn")
        local = YarnDistro.local("1.9.4", layout.distro_file("1.9.4"), layout=other_layout)
        outcome = local.install(VersionCollection(), progress_factory=silent_progress)

        assert isinstance(outcome, Installed)
        assert (other_layout.image_dir("1.9.4") / "lib" / "cli.js").is_file()
