"""Image store facade.

This module provides the public API of the image store:
- have_version(): Whether a version is in the catalog
- base_file(): Local path of a version's full or minimal ISO
- populate(): Download and derive whatever is missing

Queries never touch the filesystem. Callers must run populate() before
relying on the returned paths.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from rhcos_imagestore.catalog import VersionCatalog, load_catalog
from rhcos_imagestore.config import get_settings
from rhcos_imagestore.deriver import CoreOSInstallerDeriver, ImageDeriver
from rhcos_imagestore.paths import PathResolver
from rhcos_imagestore.populate import PopulateResult, PopulationOrchestrator
from rhcos_imagestore.types import ImageType

if TYPE_CHECKING:
    from rhcos_imagestore.config import Settings

logger = logging.getLogger(__name__)


class ImageStore:
    """Local store of full and minimal ISOs keyed by version."""

    def __init__(
        self,
        catalog: VersionCatalog,
        deriver: ImageDeriver,
        data_dir: Path,
        client: httpx.Client | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._catalog = catalog
        self._resolver = PathResolver(catalog, data_dir)
        self._orchestrator = PopulationOrchestrator(
            catalog,
            self._resolver,
            deriver,
            client=client,
            settings=settings,
        )

    @property
    def data_dir(self) -> Path:
        return self._resolver.data_dir

    @property
    def versions(self) -> list[str]:
        """Catalog versions, sorted."""
        return sorted(self._catalog)

    def have_version(self, version: str) -> bool:
        """Return True if the version is in the catalog."""
        return version in self._catalog

    def base_file(self, version: str, image_type: ImageType | str) -> Path:
        """Return the local path of a version's image.

        Does not check that the file exists.

        Args:
            version: Catalog version (e.g. '4.8').
            image_type: 'full' or 'minimal'.

        Returns:
            Path under the data directory.

        Raises:
            UnsupportedImageTypeError: If image_type is neither full nor minimal.
            UnknownVersionError: If the version is not in the catalog.
            MissingFieldError: If the version has no usable iso_url.
        """
        return self._resolver.path_for(version, image_type)

    def populate(self, cancel_event: threading.Event | None = None) -> PopulateResult:
        """Ensure full and minimal ISOs exist for every catalog version.

        Raises:
            AggregateError: If any version failed.
        """
        return self._orchestrator.populate(cancel_event)


def new_image_store(
    deriver: ImageDeriver | None = None,
    data_dir: Path | None = None,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> ImageStore:
    """Create an image store from settings.

    The catalog is loaded immediately so a malformed override fails here
    rather than during populate.

    Args:
        deriver: Minimal ISO producer (coreos-installer from settings if not
            provided).
        data_dir: Artifact directory (settings.data_dir if not provided).
        settings: Application settings (uses defaults if not provided).
        client: HTTPX client (one is created per populate run if not provided).

    Returns:
        ImageStore instance.

    Raises:
        ConfigurationError: If the catalog override is malformed.
    """
    if settings is None:
        settings = get_settings()

    catalog = load_catalog(settings.rhcos_versions)
    if deriver is None:
        deriver = CoreOSInstallerDeriver.from_settings(settings)
    store_dir = data_dir if data_dir is not None else settings.data_dir

    logger.info(
        "Image store at %s with versions %s", store_dir, ", ".join(sorted(catalog))
    )
    return ImageStore(catalog, deriver, store_dir, client=client, settings=settings)


__all__ = ["ImageStore", "new_image_store"]
