"""Catalog facade.

The Catalog discovers packs on the configured search paths, registers their
manifest entries and answers lookups afterwards:

    catalog = Catalog(CatalogConfig(search_paths=[Path("~/.packs")]))
    catalog.initialize()
    standard = catalog.get("variants", "standard")
    handle = catalog.resolve_resource(standard, "maps/standard.svg")

Lifecycle:
    UNINITIALIZED --initialize()--> INITIALIZING --ok--> READY
                                                 --error--> UNINITIALIZED

Calling initialize() on a READY catalog clears every table and rebuilds
from scratch. Items and handles obtained before that are stale. A failed
cycle leaves the tables empty and the error in ``last_error``; there is no
partial catalog.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

from packcatalog.errors import (
    CatalogNotInitializedError,
    NoPacksFoundError,
    NoSearchPathsError,
)
from packcatalog.locking import ReadWriteLock
from packcatalog.metrics import CatalogMetrics
from packcatalog.registry.manifest import JsonManifestLoader, PackKind
from packcatalog.registry.package import ZipPackageContent, scan_packages
from packcatalog.registry.tables import ItemTable
from packcatalog.registry.version import NEWEST, Selector, normalize_selector
from packcatalog.resources import FlattenedNamespace, ResourceResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from packcatalog.config import CatalogConfig
    from packcatalog.registry.manifest import ManifestLoader
    from packcatalog.registry.package import PackageContent, PackageLocation
    from packcatalog.registry.tables import RegisteredItem
    from packcatalog.resources import ResourceHandle, SharedNamespace

logger = logging.getLogger(__name__)


class CatalogState(str, Enum):
    """Initialization state of a Catalog."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Catalog:
    """Registry of variant and symbol packs.

    Args:
        config: Search paths, suffixes and manifest names.
        variant_loader: Reads variant manifests (default: JSON loader).
        symbol_loader: Reads symbol pack manifests (default: JSON loader).
        content_factory: Opens pack archives (default: ZipPackageContent).
        namespace: Shared resource namespace. Defaults to a
            FlattenedNamespace over ``config.shared_namespace`` when that
            is non-empty, else None (no deconfliction).
        metrics: Metrics container (a fresh one if omitted).
    """

    def __init__(
        self,
        config: CatalogConfig,
        *,
        variant_loader: ManifestLoader | None = None,
        symbol_loader: ManifestLoader | None = None,
        content_factory: Callable[[PackageLocation], PackageContent] = ZipPackageContent,
        namespace: SharedNamespace | None = None,
        metrics: CatalogMetrics | None = None,
    ) -> None:
        self.config = config
        if namespace is None and config.shared_namespace_enabled:
            namespace = FlattenedNamespace(config.shared_namespace, content_factory)
        self._namespace = namespace
        self._metrics = metrics or CatalogMetrics()

        self._loaders: dict[PackKind, ManifestLoader] = {
            PackKind.VARIANTS: variant_loader
            or JsonManifestLoader(PackKind.VARIANTS, content_factory),
            PackKind.SYMBOLS: symbol_loader
            or JsonManifestLoader(PackKind.SYMBOLS, content_factory),
        }
        tolerate = namespace is not None
        self._tables: dict[PackKind, ItemTable] = {
            PackKind.VARIANTS: ItemTable(PackKind.VARIANTS, tolerate_duplicates=tolerate),
            PackKind.SYMBOLS: ItemTable(PackKind.SYMBOLS, tolerate_duplicates=tolerate),
        }
        self._resolver = ResourceResolver(
            content_factory, namespace=namespace, metrics=self._metrics
        )

        self._lock = ReadWriteLock()
        self._state = CatalogState.UNINITIALIZED
        self._last_error: Exception | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> CatalogState:
        """Current lifecycle state."""
        return self._state

    @property
    def last_error(self) -> Exception | None:
        """Error of the most recent failed initialization (None after success)."""
        return self._last_error

    @property
    def metrics(self) -> CatalogMetrics:
        """Metrics container shared with the resource resolver."""
        return self._metrics

    @property
    def is_ready(self) -> bool:
        """True once an initialization cycle has succeeded."""
        return self._state is CatalogState.READY

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Scan the search paths and (re)build both tables.

        Queries block until this returns.

        Raises:
            NoSearchPathsError: If no search paths are configured.
            NoPacksFoundError: If a required table ends up empty.
            ManifestParseError: If a manifest exists but is malformed.
            DuplicateVersionError: If a name/version pair is registered twice.
            AliasConflictError: If an alias is claimed by two names.
        """
        with self._lock.write():
            self._state = CatalogState.INITIALIZING
            start = time.perf_counter()
            self._clear_tables()

            try:
                timings = self._build()
            except Exception as e:
                self._clear_tables()
                self._state = CatalogState.UNINITIALIZED
                duration_ms = (time.perf_counter() - start) * 1000
                self._metrics.record_init(succeeded=False, duration_ms=duration_ms)
                self._last_error = e
                logger.error(
                    "Catalog initialization failed",
                    extra={
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "duration_ms": round(duration_ms, 2),
                    },
                )
                raise

            duration_ms = (time.perf_counter() - start) * 1000
            variants = self._tables[PackKind.VARIANTS]
            symbols = self._tables[PackKind.SYMBOLS]
            self._metrics.record_init(
                succeeded=True,
                duration_ms=duration_ms,
                variant_names=len(variants),
                variant_items=variants.item_count(),
                symbol_pack_names=len(symbols),
                symbol_pack_items=symbols.item_count(),
                duplicates_skipped=variants.duplicates_skipped + symbols.duplicates_skipped,
            )
            self._last_error = None
            self._state = CatalogState.READY

            logger.info(
                "Catalog initialized",
                extra={
                    "variant_count": len(variants),
                    "symbol_pack_count": len(symbols),
                    "alias_count": len(variants.aliases()),
                    "duration_ms": round(duration_ms, 2),
                    **timings,
                },
            )

    def _clear_tables(self) -> None:
        for table in self._tables.values():
            table.clear()

    def _build(self) -> dict[str, float]:
        search_paths = self.config.search_paths
        if not search_paths:
            msg = "No search paths supplied; cannot look for packs"
            raise NoSearchPathsError(msg)

        timings: dict[str, float] = {}
        for kind, suffixes, manifest_name in (
            (PackKind.VARIANTS, self.config.variant_suffixes, self.config.variant_manifest),
            (PackKind.SYMBOLS, self.config.symbol_suffixes, self.config.symbol_manifest),
        ):
            t0 = time.perf_counter()
            self._populate(kind, suffixes, manifest_name)
            timings[f"{kind.value}_ms"] = round((time.perf_counter() - t0) * 1000, 2)

        if not self._tables[PackKind.VARIANTS]:
            raise NoPacksFoundError(PackKind.VARIANTS.value, search_paths)
        if self.config.require_symbol_packs and not self._tables[PackKind.SYMBOLS]:
            raise NoPacksFoundError(PackKind.SYMBOLS.value, search_paths)
        return timings

    def _locations(self, suffixes: frozenset[str], manifest_name: str) -> list[PackageLocation]:
        locations = scan_packages(self.config.search_paths, suffixes)
        if self._namespace is None:
            return locations

        # Archives on the shared namespace are found by manifest, not file name
        for handle in self._namespace.find_resources(manifest_name):
            if handle.location is not None and handle.location not in locations:
                locations.append(handle.location)
        return locations

    def _populate(self, kind: PackKind, suffixes: frozenset[str], manifest_name: str) -> None:
        table = self._tables[kind]
        loader = self._loaders[kind]
        locations = self._locations(suffixes, manifest_name)

        without_manifest = 0
        for location in locations:
            entries = loader.try_load(location, manifest_name)
            if entries is None:
                without_manifest += 1
                logger.debug(
                    "Package has no manifest, skipping",
                    extra={"package": location.name, "manifest": manifest_name},
                )
                continue
            for entry in entries:
                table.admit(entry, location.name, location)

        self._metrics.record_scan(scanned=len(locations), without_manifest=without_manifest)
        logger.debug(
            "Table populated",
            extra={
                "kind": kind.value,
                "package_count": len(locations),
                "without_manifest": without_manifest,
                "name_count": len(table),
                "item_count": table.item_count(),
            },
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _require_ready(self) -> None:
        if self._state is not CatalogState.READY:
            msg = f"Catalog is not initialized (state: {self._state.value})"
            raise CatalogNotInitializedError(msg)

    def _table(self, table: PackKind | str) -> ItemTable:
        return self._tables[PackKind(table)]

    def list_latest(self, table: PackKind | str) -> list[RegisteredItem]:
        """Newest version of every name in ``table``, sorted by name.

        Aliases never appear; each name appears once.
        """
        with self._lock.read():
            self._require_ready()
            return self._table(table).latest()

    def variants(self) -> list[RegisteredItem]:
        """Newest version of every variant, sorted by name."""
        return self.list_latest(PackKind.VARIANTS)

    def symbol_packs(self) -> list[RegisteredItem]:
        """Newest version of every symbol pack, sorted by name."""
        return self.list_latest(PackKind.SYMBOLS)

    def get(
        self,
        table: PackKind | str,
        name: str | None,
        selector: object = NEWEST,
        *,
        strict: bool = False,
    ) -> RegisteredItem | None:
        """Look up one item by name (or variant alias), case-insensitively.

        Args:
            table: "variants" or "symbols".
            name: Name or alias. None yields None.
            selector: Exact version, Selector.NEWEST or Selector.OLDEST.
            strict: Return None when an exact version is not registered,
                instead of falling back to the newest one.

        Returns:
            The item, or None if the name is unknown.

        Raises:
            CatalogNotInitializedError: Before a successful initialize().
            ValueError: If the selector is invalid.
        """
        wanted = normalize_selector(selector)
        with self._lock.read():
            self._require_ready()
            return self._get(self._table(table), name, wanted, strict=strict)

    @staticmethod
    def _get(
        table: ItemTable,
        name: str | None,
        selector: object,
        *,
        strict: bool,
    ) -> RegisteredItem | None:
        if name is None:
            return None
        group = table.group(name)
        if group is None:
            return None
        return group.get(selector, strict=strict)

    def aliases(self) -> dict[str, str]:
        """Variant alias -> canonical lowercase variant name."""
        with self._lock.read():
            self._require_ready()
            return self._tables[PackKind.VARIANTS].aliases()

    def get_versions(self, table: PackKind | str, name: str | None) -> list[float]:
        """All registered versions of a name, ascending (empty if unknown)."""
        with self._lock.read():
            self._require_ready()
            if name is None:
                return []
            group = self._table(table).group(name)
            return sorted(group.versions()) if group is not None else []

    def has_version(self, table: PackKind | str, name: str | None, selector: object) -> bool:
        """True if ``name`` resolves and the exact version (or sentinel) exists."""
        return self.get(table, name, selector, strict=True) is not None

    def resolve_resource(self, item: RegisteredItem, ref: str) -> ResourceHandle | None:
        """Resolve a reference relative to the pack ``item`` came from.

        See ResourceResolver.resolve for the lookup order.
        """
        with self._lock.read():
            self._require_ready()
            return self._resolver.resolve(item, ref)

    def resolve_package_resource(
        self, location: PackageLocation, ref: str
    ) -> ResourceHandle | None:
        """Resolve a reference against a pack archive rather than an item.

        Used for resources named by a manifest before its entries are
        registered. Deconfliction matches the archive file name.
        """
        with self._lock.read():
            self._require_ready()
            return self._resolver.resolve_in_package(location, ref)

    def package_url(self, item: RegisteredItem) -> str:
        """``jar:file:///.../Pack.zip!/`` URL of the archive holding ``item``."""
        if item is None:
            msg = "item must not be None"
            raise ValueError(msg)
        return item.source.jar_url

    def resolve_symbol_pack(
        self,
        map_graphic: Any,
        name: str | None,
        version: object,
    ) -> RegisteredItem:
        """Pick the symbol pack to draw ``map_graphic`` with.

        Tried in order: ``name`` at exactly ``version``; ``name`` at its
        newest version; the graphic's preferred symbol pack at its newest
        version; the alphabetically first symbol pack.

        A non-positive numeric version is treated as newest.

        Raises:
            ValueError: If map_graphic is None.
            CatalogNotInitializedError: Before a successful initialize(), or
                if no symbol pack is registered at all.
        """
        if map_graphic is None:
            msg = "map_graphic must not be None"
            raise ValueError(msg)

        wanted: object = version
        if (
            not isinstance(version, bool | Selector)
            and isinstance(version, int | float)
            and version <= 0
        ):
            logger.warning(
                "Symbol pack requested with non-positive version, using newest",
                extra={"symbol_pack": name, "version": version},
            )
            wanted = NEWEST
        wanted = normalize_selector(wanted)
        preferred = getattr(map_graphic, "preferred_symbol_pack_name", None)

        with self._lock.read():
            self._require_ready()
            table = self._tables[PackKind.SYMBOLS]

            pack = self._get(table, name, wanted, strict=True)
            if pack is None:
                pack = self._get(table, name, NEWEST, strict=False)
            if pack is None and preferred is not None:
                pack = self._get(table, preferred, NEWEST, strict=False)
            if pack is None:
                latest = table.latest()
                if not latest:
                    msg = "No symbol packs are registered"
                    raise CatalogNotInitializedError(msg)
                pack = latest[0]
            return pack

    def summary(self) -> dict[str, Any]:
        """Counts for logging and the CLI."""
        with self._lock.read():
            self._require_ready()
            variants = self._tables[PackKind.VARIANTS]
            symbols = self._tables[PackKind.SYMBOLS]
            return {
                "variant_names": len(variants),
                "variant_items": variants.item_count(),
                "aliases": len(variants.aliases()),
                "symbol_pack_names": len(symbols),
                "symbol_pack_items": symbols.item_count(),
            }
