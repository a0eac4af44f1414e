"""Minimal image derivation.

The populate run needs something that turns a full live ISO into a minimal
ISO that fetches its root filesystem from a URL at boot. Anything with a
matching ``derive_minimal`` method can be injected. The bundled
implementation runs ``coreos-installer iso extract minimal-iso``.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rhcos_imagestore.errors import DerivationError

if TYPE_CHECKING:
    from rhcos_imagestore.config import Settings

logger = logging.getLogger(__name__)

# Timeout for derivation (seconds)
DERIVE_TIMEOUT = 1800


@runtime_checkable
class ImageDeriver(Protocol):
    """Produces a minimal ISO from a full ISO."""

    def derive_minimal(
        self,
        full_image_path: Path,
        rootfs_url: str,
        output_path: Path,
    ) -> None:
        """Write a minimal ISO to output_path.

        Must raise DerivationError on failure and must not leave a file at
        output_path when it does.
        """
        ...


class CoreOSInstallerDeriver:
    """ImageDeriver backed by the coreos-installer CLI."""

    def __init__(
        self,
        executable: str = "coreos-installer",
        timeout: int | None = DERIVE_TIMEOUT,
    ) -> None:
        self.executable = executable
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> CoreOSInstallerDeriver:
        """Create a deriver using the configured executable and timeout."""
        return cls(
            executable=settings.coreos_installer,
            timeout=settings.derive_timeout,
        )

    def compose_command(
        self,
        full_image_path: Path,
        rootfs_url: str,
        output_path: Path,
    ) -> list[str]:
        """Compose the minimal ISO extraction command.

        Returns:
            Command as list of strings suitable for subprocess.
        """
        return [
            self.executable,
            "iso",
            "extract",
            "minimal-iso",
            "--rootfs-url",
            rootfs_url,
            str(full_image_path),
            str(output_path),
        ]

    def derive_minimal(
        self,
        full_image_path: Path,
        rootfs_url: str,
        output_path: Path,
    ) -> None:
        """Create a minimal ISO with coreos-installer.

        Args:
            full_image_path: Path to the full live ISO.
            rootfs_url: URL the minimal ISO will fetch its rootfs from.
            output_path: Destination of the minimal ISO.

        Raises:
            DerivationError: If the command cannot run, times out or fails.
        """
        cmd = self.compose_command(full_image_path, rootfs_url, output_path)
        logger.info("Executing: %s", shlex.join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            output_path.unlink(missing_ok=True)
            raise DerivationError(
                f"{self.executable} timed out after {self.timeout} seconds",
                exit_code=-1,
            ) from e
        except OSError as e:
            output_path.unlink(missing_ok=True)
            raise DerivationError(f"Failed to run {self.executable}: {e}") from e

        if result.returncode != 0:
            output_path.unlink(missing_ok=True)
            stderr = result.stderr.strip()
            raise DerivationError(
                f"{self.executable} exited with code {result.returncode}: {stderr}",
                exit_code=result.returncode,
            )


__all__ = ["DERIVE_TIMEOUT", "CoreOSInstallerDeriver", "ImageDeriver"]
