"""Versioned catalog of variant and symbol packs.

- Discovery of pack archives on search paths
- Name/alias lookup with multiple coexisting versions
- Resolution of pack-relative resources to loadable handles
"""

from packcatalog.catalog import Catalog, CatalogState
from packcatalog.config import CatalogConfig, load_config
from packcatalog.errors import (
    AliasConflictError,
    CatalogError,
    CatalogInitError,
    CatalogNotInitializedError,
    DuplicateVersionError,
    ManifestParseError,
    NoPacksFoundError,
    NoSearchPathsError,
    RegistryError,
)
from packcatalog.registry import NEWEST, OLDEST, PackKind, RegisteredItem, Selector
from packcatalog.resources import FlattenedNamespace, ResourceHandle, ResourceResolver

__version__ = "0.1.0"

__all__ = [
    "NEWEST",
    "OLDEST",
    "AliasConflictError",
    "Catalog",
    "CatalogConfig",
    "CatalogError",
    "CatalogInitError",
    "CatalogNotInitializedError",
    "CatalogState",
    "DuplicateVersionError",
    "FlattenedNamespace",
    "ManifestParseError",
    "NoPacksFoundError",
    "NoSearchPathsError",
    "PackKind",
    "RegisteredItem",
    "RegistryError",
    "ResourceHandle",
    "ResourceResolver",
    "Selector",
    "load_config",
]
