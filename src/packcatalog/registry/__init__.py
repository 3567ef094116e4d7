"""Pack registry building blocks.

- Package discovery and archive access (package)
- Manifest entries, descriptors and loaders (manifest)
- Version selectors with degrade-on-miss resolution (version)
- Name/alias keyed version groups (tables)
"""

from packcatalog.registry.manifest import (
    SYMBOL_MANIFEST_NAME,
    VARIANT_MANIFEST_NAME,
    JsonManifestLoader,
    ManifestEntry,
    ManifestLoader,
    MapGraphicDescriptor,
    PackKind,
    SymbolPackDescriptor,
    VariantDescriptor,
)
from packcatalog.registry.package import (
    SYMBOL_SUFFIXES,
    VARIANT_SUFFIXES,
    PackageContent,
    PackageLocation,
    ZipPackageContent,
    scan_packages,
)
from packcatalog.registry.tables import ItemTable, RegisteredItem, VersionGroup
from packcatalog.registry.version import (
    NEWEST,
    OLDEST,
    VERSION_NEWEST,
    VERSION_OLDEST,
    Selector,
    normalize_selector,
    select_version,
)

__all__ = [
    "NEWEST",
    "OLDEST",
    "SYMBOL_MANIFEST_NAME",
    "SYMBOL_SUFFIXES",
    "VARIANT_MANIFEST_NAME",
    "VARIANT_SUFFIXES",
    "VERSION_NEWEST",
    "VERSION_OLDEST",
    "ItemTable",
    "JsonManifestLoader",
    "ManifestEntry",
    "ManifestLoader",
    "MapGraphicDescriptor",
    "PackKind",
    "PackageContent",
    "PackageLocation",
    "RegisteredItem",
    "Selector",
    "SymbolPackDescriptor",
    "VariantDescriptor",
    "VersionGroup",
    "ZipPackageContent",
    "normalize_selector",
    "scan_packages",
    "select_version",
]
