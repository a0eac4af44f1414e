"""Local path resolution for catalog versions.

Paths are a pure function of the data directory, the version's ISO URL
and the image type. Nothing here touches the filesystem.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from rhcos_imagestore.errors import (
    MissingFieldError,
    UnknownVersionError,
    UnsupportedImageTypeError,
)
from rhcos_imagestore.types import ImageType

if TYPE_CHECKING:
    from rhcos_imagestore.catalog import VersionCatalog, VersionEntry

logger = logging.getLogger(__name__)

MINIMAL_PREFIX = "minimal-"


def url_basename(url: str) -> str:
    """Return the last path segment of a URL, ignoring query and fragment.

    Args:
        url: Remote URL.

    Returns:
        File name portion of the URL path (empty if the path ends in '/').
    """
    return posixpath.basename(urlsplit(url).path)


class PathResolver:
    """Derive local artifact paths and source URLs from the catalog."""

    def __init__(self, catalog: VersionCatalog, data_dir: Path) -> None:
        self.catalog = catalog
        self.data_dir = Path(data_dir)

    def _entry(self, version: str) -> VersionEntry:
        try:
            return self.catalog[version]
        except KeyError:
            raise UnknownVersionError(version) from None

    def _iso_name(self, version: str) -> str:
        iso_url = self._entry(version).iso_url
        if not iso_url:
            raise MissingFieldError(version, "iso_url")
        name = url_basename(iso_url)
        if not name:
            raise MissingFieldError(
                version,
                "iso_url",
                reason=f"version {version} iso_url '{iso_url}' has no file name",
            )
        return name

    def full_path(self, version: str) -> Path:
        """Return the local path of the full ISO for a version.

        Raises:
            UnknownVersionError: If the version is not in the catalog.
            MissingFieldError: If the entry has no usable iso_url.
        """
        path = self.data_dir / self._iso_name(version)
        logger.debug("Full image path for %s: %s", version, path)
        return path

    def minimal_path(self, version: str) -> Path:
        """Return the local path of the minimal ISO for a version.

        Raises:
            UnknownVersionError: If the version is not in the catalog.
            MissingFieldError: If the entry has no usable iso_url.
        """
        path = self.data_dir / f"{MINIMAL_PREFIX}{self._iso_name(version)}"
        logger.debug("Minimal image path for %s: %s", version, path)
        return path

    def derived_source_url(self, version: str) -> str:
        """Return the rootfs URL the minimal ISO for a version points at.

        Raises:
            UnknownVersionError: If the version is not in the catalog.
            MissingFieldError: If the entry has no rootfs_url.
        """
        rootfs_url = self._entry(version).rootfs_url
        if not rootfs_url:
            raise MissingFieldError(version, "rootfs_url")
        return rootfs_url

    def path_for(self, version: str, image_type: ImageType | str) -> Path:
        """Return the local path of the given image type for a version.

        Args:
            version: Catalog version.
            image_type: 'full' or 'minimal'.

        Raises:
            UnsupportedImageTypeError: If image_type is neither full nor minimal.
            UnknownVersionError: If the version is not in the catalog.
            MissingFieldError: If the entry has no usable iso_url.
        """
        try:
            kind = ImageType(image_type)
        except ValueError:
            raise UnsupportedImageTypeError(str(image_type)) from None

        if kind is ImageType.FULL:
            return self.full_path(version)
        return self.minimal_path(version)


__all__ = ["MINIMAL_PREFIX", "PathResolver", "url_basename"]
