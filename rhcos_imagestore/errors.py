"""Error definitions for the image store.

Every error carries a stable ``code`` for structured handling and, where it
applies, the catalog version it belongs to.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rhcos_imagestore.populate import VersionResult

CONFIGURATION_ERROR = "configuration_error"
UNKNOWN_VERSION = "unknown_version"
MISSING_FIELD = "missing_field"
UNSUPPORTED_IMAGE_TYPE = "unsupported_image_type"
FETCH_ERROR = "fetch_error"
DERIVATION_ERROR = "derivation_error"
CANCELLED = "cancelled"
AGGREGATE_ERROR = "aggregate_error"


class ImageStoreError(Exception):
    """Base class for all image store errors."""

    def __init__(
        self,
        message: str,
        code: str = "image_store_error",
        version: str | None = None,
    ) -> None:
        """Initialize ImageStoreError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            version: Catalog version the error relates to, if any.
        """
        super().__init__(message)
        self.code = code
        self.version = version


class ConfigurationError(ImageStoreError):
    """Raised when the version catalog cannot be loaded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CONFIGURATION_ERROR)


class UnknownVersionError(ImageStoreError):
    """Raised when a version is not present in the catalog."""

    def __init__(self, version: str) -> None:
        super().__init__(
            f"missing version entry for {version}",
            code=UNKNOWN_VERSION,
            version=version,
        )


class MissingFieldError(ImageStoreError):
    """Raised when a catalog entry lacks a required URL."""

    def __init__(self, version: str, field: str, reason: str | None = None) -> None:
        """Initialize MissingFieldError.

        Args:
            version: Catalog version with the incomplete entry.
            field: Name of the missing key (e.g. 'iso_url').
            reason: Optional override for the default message.
        """
        message = reason or f"version {version} missing key '{field}'"
        super().__init__(message, code=MISSING_FIELD, version=version)
        self.field = field


class UnsupportedImageTypeError(ImageStoreError):
    """Raised when an image type other than full or minimal is requested."""

    def __init__(self, image_type: str) -> None:
        super().__init__(
            f"unsupported image type '{image_type}'",
            code=UNSUPPORTED_IMAGE_TYPE,
        )
        self.image_type = image_type


class FetchError(ImageStoreError):
    """Raised when downloading a remote image fails."""

    def __init__(
        self,
        message: str,
        url: str,
        cause: str,
        status: int | None = None,
        version: str | None = None,
    ) -> None:
        """Initialize FetchError.

        Args:
            message: Error description.
            url: URL that was being downloaded.
            cause: Short failure class ('bad status', 'size mismatch', ...).
            status: HTTP status code when the server answered.
            version: Catalog version the download belonged to.
        """
        super().__init__(message, code=FETCH_ERROR, version=version)
        self.url = url
        self.cause = cause
        self.status = status


class DerivationError(ImageStoreError):
    """Raised when a minimal image cannot be produced from a full image."""

    def __init__(
        self,
        message: str,
        version: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message, code=DERIVATION_ERROR, version=version)
        self.exit_code = exit_code


class PopulateCancelledError(ImageStoreError):
    """Raised for a version whose remaining work was abandoned on cancellation."""

    def __init__(self, version: str, stage: str) -> None:
        super().__init__(
            f"populate cancelled for version {version} before {stage}",
            code=CANCELLED,
            version=version,
        )
        self.stage = stage


class AggregateError(ImageStoreError):
    """Raised by populate when one or more versions failed.

    Attributes:
        errors: Mapping of version to the failure recorded for it.
        results: Per-version outcomes of the run, successes included.
    """

    def __init__(
        self,
        errors: Mapping[str, Exception],
        results: list[VersionResult] | None = None,
    ) -> None:
        self.errors = dict(errors)
        self.results = list(results or [])
        lines = [f"{v}: {self.errors[v]}" for v in sorted(self.errors)]
        super().__init__(
            f"{len(self.errors)} version(s) failed to populate: " + "; ".join(lines),
            code=AGGREGATE_ERROR,
        )


__all__ = [
    "AGGREGATE_ERROR",
    "CANCELLED",
    "CONFIGURATION_ERROR",
    "DERIVATION_ERROR",
    "FETCH_ERROR",
    "MISSING_FIELD",
    "UNKNOWN_VERSION",
    "UNSUPPORTED_IMAGE_TYPE",
    "AggregateError",
    "ConfigurationError",
    "DerivationError",
    "FetchError",
    "ImageStoreError",
    "MissingFieldError",
    "PopulateCancelledError",
    "UnknownVersionError",
    "UnsupportedImageTypeError",
]
