"""Tests for the image store facade."""

import json
from pathlib import Path

import httpx
import pytest
import respx

from rhcos_imagestore.catalog import DEFAULT_VERSIONS
from rhcos_imagestore.config import Settings
from rhcos_imagestore.deriver import CoreOSInstallerDeriver
from rhcos_imagestore.errors import (
    AggregateError,
    ConfigurationError,
    MissingFieldError,
    UnknownVersionError,
    UnsupportedImageTypeError,
)
from rhcos_imagestore.store import ImageStore, new_image_store
from rhcos_imagestore.types import ImageType


class RecordingDeriver:
    """Writes a marker file for every derivation request."""

    def __init__(self) -> None:
        self.calls = []

    def derive_minimal(self, full_image_path, rootfs_url, output_path):
        self.calls.append(rootfs_url)
        output_path.write_bytes(b"minimal")


@pytest.fixture
def store() -> ImageStore:
    """Store over the built-in catalog rooted at /data."""
    return new_image_store(RecordingDeriver(), data_dir=Path("/data"), settings=Settings())


class TestNewImageStore:
    """Tests for new_image_store function."""

    def test_default_catalog(self, store):
        """Should use the built-in catalog when no override is configured."""
        assert store.versions == sorted(DEFAULT_VERSIONS)

    def test_default_deriver(self):
        """Should use coreos-installer when no deriver is injected."""
        store = new_image_store(data_dir=Path("/data"), settings=Settings())
        assert isinstance(store._orchestrator.deriver, CoreOSInstallerDeriver)

    def test_data_dir_from_settings(self, tmp_path):
        """Should fall back to the configured data directory."""
        settings = Settings(data_dir=tmp_path)
        store = new_image_store(RecordingDeriver(), settings=settings)
        assert store.data_dir == tmp_path

    def test_catalog_override(self):
        """Should load the catalog override from settings."""
        raw = json.dumps({"4.9": {"iso_url": "https://e.com/a.iso"}})
        store = new_image_store(
            RecordingDeriver(), data_dir=Path("/data"), settings=Settings(rhcos_versions=raw)
        )
        assert store.versions == ["4.9"]

    def test_malformed_override_fails_construction(self):
        """Should fail fast on a malformed catalog override."""
        with pytest.raises(ConfigurationError):
            new_image_store(
                RecordingDeriver(),
                data_dir=Path("/data"),
                settings=Settings(rhcos_versions="{not json"),
            )

    def test_incomplete_override_does_not_fail_construction(self):
        """Should accept entries missing rootfs_url at construction."""
        raw = json.dumps({"4.9": {"iso_url": "https://e.com/a.iso"}})
        store = new_image_store(
            RecordingDeriver(), data_dir=Path("/data"), settings=Settings(rhcos_versions=raw)
        )
        assert store.have_version("4.9")


class TestHaveVersion:
    """Tests for ImageStore.have_version."""

    def test_known_version(self, store):
        """Should report catalog versions as present."""
        assert store.have_version("4.8") is True

    def test_unknown_version(self, store):
        """Should report absent versions as missing."""
        assert store.have_version("9.9") is False


class TestBaseFile:
    """Tests for ImageStore.base_file."""

    def test_minimal_path(self, store):
        """Should resolve the minimal ISO under the data directory."""
        assert store.base_file("4.8", "minimal") == Path(
            "/data/minimal-rhcos-4.8.0-rc.3-x86_64-live.x86_64.iso"
        )

    def test_full_path(self, store):
        """Should resolve the full ISO under the data directory."""
        assert store.base_file("4.8", ImageType.FULL) == Path(
            "/data/rhcos-4.8.0-rc.3-x86_64-live.x86_64.iso"
        )

    def test_unknown_version(self, store):
        """Should raise UnknownVersionError for absent versions."""
        with pytest.raises(UnknownVersionError):
            store.base_file("9.9", "full")

    def test_unsupported_image_type(self, store):
        """Should raise UnsupportedImageTypeError for other image types."""
        with pytest.raises(UnsupportedImageTypeError):
            store.base_file("4.8", "huge")

    def test_missing_iso_url(self):
        """Should surface MissingFieldError for entries without iso_url."""
        raw = json.dumps({"4.9": {"rootfs_url": "https://e.com/r.img"}})
        store = new_image_store(
            RecordingDeriver(), data_dir=Path("/data"), settings=Settings(rhcos_versions=raw)
        )
        with pytest.raises(MissingFieldError):
            store.base_file("4.9", "minimal")

    def test_no_filesystem_access(self, tmp_path):
        """Should return paths whether or not the files exist."""
        store = new_image_store(
            RecordingDeriver(), data_dir=tmp_path / "absent", settings=Settings()
        )
        path = store.base_file("4.7", "full")
        assert not path.exists()
        assert not (tmp_path / "absent").exists()


class TestPopulate:
    """Tests for ImageStore.populate."""

    @respx.mock
    def test_populate_then_query(self, tmp_path):
        """Should make every base_file path exist after a successful populate."""
        for entry in DEFAULT_VERSIONS.values():
            respx.get(entry["iso_url"]).mock(
                return_value=httpx.Response(200, content=b"iso")
            )
        deriver = RecordingDeriver()
        store = new_image_store(deriver, data_dir=tmp_path, settings=Settings())

        store.populate()

        for version in store.versions:
            assert store.base_file(version, "full").exists()
            assert store.base_file(version, "minimal").exists()
        assert len(deriver.calls) == len(DEFAULT_VERSIONS)

    @respx.mock
    def test_populate_failure(self, tmp_path):
        """Should raise AggregateError naming the failed version."""
        for version, entry in DEFAULT_VERSIONS.items():
            status = 404 if version == "4.6" else 200
            respx.get(entry["iso_url"]).mock(
                return_value=httpx.Response(status, content=b"iso")
            )
        store = new_image_store(RecordingDeriver(), data_dir=tmp_path, settings=Settings())

        with pytest.raises(AggregateError) as exc_info:
            store.populate()

        assert list(exc_info.value.errors) == ["4.6"]
        assert store.base_file("4.7", "minimal").exists()
