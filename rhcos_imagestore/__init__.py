"""RHCOS Image Store - local cache of base boot images for provisioning.

This package keeps a full live ISO and a derived minimal ISO on disk for
every configured RHCOS version, and answers path queries for them.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
