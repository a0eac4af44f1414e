"""Version catalog for the image store.

This module handles:
- The built-in table of RHCOS versions and their source URLs
- Parsing and validating a JSON catalog override
- Rejecting catalogs whose versions would share a local file path

Entries are validated lazily: a version without ``iso_url`` or
``rootfs_url`` loads fine and only fails when that URL is needed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from rhcos_imagestore.errors import ConfigurationError
from rhcos_imagestore.paths import MINIMAL_PREFIX, url_basename

logger = logging.getLogger(__name__)

RHCOS_MIRROR_BASE = "https://mirror.openshift.com/pub/openshift-v4/dependencies/rhcos"

DEFAULT_VERSIONS: dict[str, dict[str, str]] = {
    "4.6": {
        "iso_url": f"{RHCOS_MIRROR_BASE}/4.6/4.6.8/rhcos-4.6.8-x86_64-live.x86_64.iso",
        "rootfs_url": f"{RHCOS_MIRROR_BASE}/4.6/4.6.8/rhcos-live-rootfs.x86_64.img",
    },
    "4.7": {
        "iso_url": f"{RHCOS_MIRROR_BASE}/4.7/4.7.13/rhcos-4.7.13-x86_64-live.x86_64.iso",
        "rootfs_url": f"{RHCOS_MIRROR_BASE}/4.7/4.7.13/rhcos-live-rootfs.x86_64.img",
    },
    "4.8": {
        "iso_url": (
            f"{RHCOS_MIRROR_BASE}/pre-release/4.8.0-rc.3/"
            "rhcos-4.8.0-rc.3-x86_64-live.x86_64.iso"
        ),
        "rootfs_url": (
            f"{RHCOS_MIRROR_BASE}/pre-release/4.8.0-rc.3/rhcos-live-rootfs.x86_64.img"
        ),
    },
}


class VersionEntry(BaseModel):
    """Source locations for one catalog version.

    Attributes:
        iso_url: URL of the full live ISO.
        rootfs_url: URL of the root filesystem image the minimal ISO boots from.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    iso_url: str | None = Field(default=None, description="Full live ISO URL")
    rootfs_url: str | None = Field(default=None, description="Live rootfs image URL")


_CATALOG_ADAPTER = TypeAdapter(dict[str, VersionEntry])


class VersionCatalog(Mapping[str, VersionEntry]):
    """Read-only mapping of version string to VersionEntry."""

    def __init__(self, entries: Mapping[str, VersionEntry]) -> None:
        self._entries = dict(entries)
        self._check_disjoint_paths()

    def __getitem__(self, version: str) -> VersionEntry:
        return self._entries[version]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"VersionCatalog({sorted(self._entries)!r})"

    def _check_disjoint_paths(self) -> None:
        """Reject versions whose full or minimal ISOs would land on the same file."""
        owners: dict[str, str] = {}
        for version in sorted(self._entries):
            iso_url = self._entries[version].iso_url
            if not iso_url:
                continue
            name = url_basename(iso_url)
            if not name:
                continue
            for path_name in (name, f"{MINIMAL_PREFIX}{name}"):
                if path_name in owners:
                    raise ConfigurationError(
                        f"versions {owners[path_name]} and {version} both resolve to "
                        f"image file '{path_name}'"
                    )
                owners[path_name] = version


def load_catalog(raw: str | None = None) -> VersionCatalog:
    """Build the version catalog.

    Args:
        raw: JSON object mapping version to {"iso_url", "rootfs_url"}.
            None or blank selects the built-in table.

    Returns:
        VersionCatalog instance.

    Raises:
        ConfigurationError: If the override is malformed or two versions
            share an image file name.
    """
    if raw is None or not raw.strip():
        logger.debug("Using built-in version catalog")
        entries = _CATALOG_ADAPTER.validate_python(DEFAULT_VERSIONS)
        return VersionCatalog(entries)

    try:
        entries = _CATALOG_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid version catalog: {e}") from e

    logger.debug("Loaded version catalog override with %d version(s)", len(entries))
    return VersionCatalog(entries)


__all__ = [
    "DEFAULT_VERSIONS",
    "RHCOS_MIRROR_BASE",
    "VersionCatalog",
    "VersionEntry",
    "load_catalog",
]
