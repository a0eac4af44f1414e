"""Population of the image store.

For every catalog version, in parallel:
1. Ensure the full ISO is on disk, downloading it if missing
2. Ensure the minimal ISO is on disk, deriving it if missing

A failing version never stops its siblings. Failures are collected and
raised together once every version has finished. Presence is a plain
existence check, so re-running only retries what is still missing.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from rhcos_imagestore.errors import (
    AggregateError,
    DerivationError,
    FetchError,
    ImageStoreError,
    PopulateCancelledError,
)
from rhcos_imagestore.fetch import DOWNLOAD_TIMEOUT, download_file
from rhcos_imagestore.types import VersionState

if TYPE_CHECKING:
    from rhcos_imagestore.catalog import VersionCatalog
    from rhcos_imagestore.config import Settings
    from rhcos_imagestore.deriver import ImageDeriver
    from rhcos_imagestore.paths import PathResolver

logger = logging.getLogger(__name__)


@dataclass
class VersionResult:
    """Outcome of populating one version.

    Attributes:
        version: Catalog version.
        state: Last state reached (DONE or FAILED when the run is over).
        fetched: Whether the full ISO was downloaded during this run.
        derived: Whether the minimal ISO was created during this run.
        error: Failure recorded for the version, if any.
    """

    version: str
    state: VersionState = VersionState.UNCHECKED
    fetched: bool = False
    derived: bool = False
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.state is VersionState.DONE


@dataclass
class PopulateResult:
    """Outcome of a populate run across all versions."""

    results: list[VersionResult] = field(default_factory=list)

    @property
    def fetched(self) -> int:
        return sum(1 for r in self.results if r.fetched)

    @property
    def derived(self) -> int:
        return sum(1 for r in self.results if r.derived)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


class _ErrorCollector:
    """Append-only, thread-safe record of per-version failures."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: dict[str, Exception] = {}

    def add(self, version: str, error: Exception) -> None:
        with self._lock:
            self._errors.setdefault(version, error)

    def snapshot(self) -> dict[str, Exception]:
        with self._lock:
            return dict(self._errors)


class PopulationOrchestrator:
    """Ensure every catalog version has its full and minimal ISO on disk."""

    def __init__(
        self,
        catalog: VersionCatalog,
        resolver: PathResolver,
        deriver: ImageDeriver,
        client: httpx.Client | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.deriver = deriver
        self.client = client
        self.download_timeout: float = (
            settings.download_timeout if settings is not None else DOWNLOAD_TIMEOUT
        )
        self.max_workers: int | None = (
            settings.max_concurrent_versions if settings is not None else None
        )

    def populate(
        self,
        cancel_event: threading.Event | None = None,
    ) -> PopulateResult:
        """Populate every version in the catalog.

        Args:
            cancel_event: When set, versions stop before starting any further
                download or derivation. Work already in progress finishes.

        Returns:
            PopulateResult with one VersionResult per version.

        Raises:
            AggregateError: If any version failed, after all versions finished.
        """
        versions = sorted(self.catalog)
        if not versions:
            logger.info("Version catalog is empty, nothing to populate")
            return PopulateResult()

        if cancel_event is None:
            cancel_event = threading.Event()

        collector = _ErrorCollector()
        results = {v: VersionResult(version=v) for v in versions}
        workers = min(self.max_workers or len(versions), len(versions))

        manage_client = self.client is None
        http_client: httpx.Client = (
            httpx.Client(follow_redirects=True) if manage_client else self.client  # type: ignore[assignment]
        )

        logger.info(
            "Populating %d version(s) with %d worker(s)", len(versions), workers
        )

        try:
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="populate"
            ) as executor:
                futures: dict[Future[None], str] = {
                    executor.submit(
                        self._populate_version,
                        http_client,
                        results[v],
                        collector,
                        cancel_event,
                    ): v
                    for v in versions
                }

            for future, version in futures.items():
                exc = future.exception()
                if exc is not None:
                    logger.error(
                        "Unexpected failure populating version %s",
                        version,
                        exc_info=exc,
                    )
                    results[version].state = VersionState.FAILED
                    results[version].error = exc
                    collector.add(version, exc)
        finally:
            if manage_client:
                http_client.close()

        outcome = PopulateResult(results=[results[v] for v in versions])
        errors = collector.snapshot()
        if errors:
            raise AggregateError(errors, outcome.results)

        logger.info(
            "Populated %d version(s): %d downloaded, %d derived",
            len(versions),
            outcome.fetched,
            outcome.derived,
        )
        return outcome

    def _populate_version(
        self,
        client: httpx.Client,
        result: VersionResult,
        collector: _ErrorCollector,
        cancel_event: threading.Event,
    ) -> None:
        """Run the per-version state machine, recording any failure."""
        version = result.version
        try:
            self._ensure_full(client, result, cancel_event)
            result.state = VersionState.FULL_PRESENT
            self._ensure_minimal(result, cancel_event)
            result.state = VersionState.MINIMAL_PRESENT
        except ImageStoreError as e:
            logger.error("Failed to populate version %s: %s", version, e)
            result.state = VersionState.FAILED
            result.error = e
            collector.add(version, e)
            return

        result.state = VersionState.DONE

    def _ensure_full(
        self,
        client: httpx.Client,
        result: VersionResult,
        cancel_event: threading.Event,
    ) -> None:
        version = result.version
        full_path = self.resolver.full_path(version)
        if full_path.exists():
            logger.info("Full image for version %s already present", version)
            return

        if cancel_event.is_set():
            raise PopulateCancelledError(version, "download")

        url = self.catalog[version].iso_url or ""
        try:
            download_file(client, url, full_path, timeout=self.download_timeout)
        except FetchError as e:
            raise FetchError(
                f"failed to download {url}: {e}",
                url=url,
                cause=e.cause,
                status=e.status,
                version=version,
            ) from e
        result.fetched = True
        logger.info("Finished downloading for version %s", version)

    def _ensure_minimal(
        self,
        result: VersionResult,
        cancel_event: threading.Event,
    ) -> None:
        version = result.version
        minimal_path = self.resolver.minimal_path(version)
        if minimal_path.exists():
            logger.info("Minimal image for version %s already present", version)
            return

        rootfs_url = self.resolver.derived_source_url(version)
        full_path = self.resolver.full_path(version)

        if cancel_event.is_set():
            raise PopulateCancelledError(version, "derivation")

        logger.info("Creating minimal iso for version %s", version)
        try:
            self.deriver.derive_minimal(full_path, rootfs_url, minimal_path)
        except DerivationError as e:
            minimal_path.unlink(missing_ok=True)
            raise DerivationError(
                f"failed to create minimal iso template for version {version}: {e}",
                version=version,
                exit_code=e.exit_code,
            ) from e
        except Exception as e:
            # Injected derivers may fail outside their contract
            logger.exception("Deriver raised unexpectedly for version %s", version)
            minimal_path.unlink(missing_ok=True)
            raise DerivationError(
                f"failed to create minimal iso template for version {version}: {e}",
                version=version,
            ) from e
        result.derived = True
        logger.info("Finished creating minimal iso for version %s", version)


__all__ = ["PopulateResult", "PopulationOrchestrator", "VersionResult"]
