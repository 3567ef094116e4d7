"""Exception hierarchy for the pack catalog.

Fatal initialization errors all derive from CatalogInitError so callers can
stop the game-setup flow with a single except clause:

    CatalogError
     ├── CatalogInitError
     │    ├── NoSearchPathsError
     │    ├── NoPacksFoundError
     │    ├── ManifestParseError
     │    └── RegistryError
     │         ├── DuplicateVersionError
     │         └── AliasConflictError
     └── CatalogNotInitializedError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from packcatalog.registry.package import PackageLocation


class CatalogError(Exception):
    """Base exception for catalog operations."""


class CatalogInitError(CatalogError):
    """Raised when an initialization cycle cannot complete."""


class CatalogNotInitializedError(CatalogError):
    """Raised when the catalog is queried before a successful initialization."""


class NoSearchPathsError(CatalogInitError):
    """Raised when no search paths were supplied."""


class NoPacksFoundError(CatalogInitError):
    """Raised when no pack of a required kind was found on any search path.

    Attributes:
        kind: Table kind that came up empty ("variants" or "symbols").
        search_paths: The directories that were searched.
    """

    def __init__(self, kind: str, search_paths: Sequence[Path]) -> None:
        self.kind = kind
        self.search_paths = tuple(search_paths)
        joined = "; ".join(str(p) for p in self.search_paths)
        super().__init__(f"No {kind} found on path: {joined}")


class ManifestParseError(CatalogInitError):
    """Raised when a manifest exists but cannot be parsed.

    Attributes:
        location: Package the manifest came from (None if not known yet).
    """

    def __init__(self, message: str, location: PackageLocation | None = None) -> None:
        self.location = location
        if location is not None:
            message = f"{message} (package: {location.uri})"
        super().__init__(message)


class RegistryError(CatalogInitError):
    """Base exception for registry data errors."""


class DuplicateVersionError(RegistryError):
    """Raised when two packs register the same name with the same version."""


class AliasConflictError(RegistryError):
    """Raised when an alias is claimed by two differently named variants."""
