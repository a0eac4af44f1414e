"""Shared type definitions for rhcos_imagestore.

This module contains enums shared across modules to avoid circular imports.
"""

from enum import Enum


class ImageType(str, Enum):
    """Kind of base image kept for a version."""

    FULL = "full"
    MINIMAL = "minimal"


class VersionState(str, Enum):
    """Progress of a single version through a populate run."""

    UNCHECKED = "unchecked"
    FULL_PRESENT = "full-present"
    MINIMAL_PRESENT = "minimal-present"
    DONE = "done"
    FAILED = "failed"


__all__ = ["ImageType", "VersionState"]
