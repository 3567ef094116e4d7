"""Catalog metrics.

CatalogMetrics is a plain counter container updated by the catalog and the
resource resolver. CatalogMetricsExporter mirrors it into a Prometheus
CollectorRegistry using low-cardinality names only (no pack names, no
resource paths).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

RESOLUTION_OUTCOMES: tuple[str, ...] = ("deconflicted", "absolute", "package", "unresolved")


@dataclass
class CatalogMetrics:
    """Counters for catalog initialization and resource resolution."""

    # Initialization (cumulative across init cycles)
    init_cycles: int = 0
    init_failures: int = 0
    packages_scanned: int = 0
    packages_without_manifest: int = 0
    duplicates_skipped: int = 0

    # Current table sizes (reset on every init)
    variant_names: int = 0
    variant_items: int = 0
    symbol_pack_names: int = 0
    symbol_pack_items: int = 0
    last_init_duration_ms: float = 0.0

    # Resource resolution, per outcome
    resolutions: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(RESOLUTION_OUTCOMES, 0)
    )

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_scan(self, *, scanned: int, without_manifest: int) -> None:
        """Record one table's scan results."""
        with self._lock:
            self.packages_scanned += scanned
            self.packages_without_manifest += without_manifest

    def record_init(
        self,
        *,
        succeeded: bool,
        duration_ms: float,
        variant_names: int = 0,
        variant_items: int = 0,
        symbol_pack_names: int = 0,
        symbol_pack_items: int = 0,
        duplicates_skipped: int = 0,
    ) -> None:
        """Record the end of an init cycle."""
        with self._lock:
            self.init_cycles += 1
            if not succeeded:
                self.init_failures += 1
            self.last_init_duration_ms = duration_ms
            self.variant_names = variant_names
            self.variant_items = variant_items
            self.symbol_pack_names = symbol_pack_names
            self.symbol_pack_items = symbol_pack_items
            self.duplicates_skipped += duplicates_skipped

    def record_resolution(self, outcome: str) -> None:
        """Record which fallback step answered a resource lookup."""
        if outcome not in self.resolutions:
            msg = f"Unknown resolution outcome: {outcome!r}"
            raise ValueError(msg)
        with self._lock:
            self.resolutions[outcome] += 1

    @property
    def resolutions_total(self) -> int:
        """Total resource lookups."""
        return sum(self.resolutions.values())

    def to_dict(self) -> dict[str, object]:
        """Snapshot for logging or JSON output."""
        with self._lock:
            return {
                "init_cycles": self.init_cycles,
                "init_failures": self.init_failures,
                "packages_scanned": self.packages_scanned,
                "packages_without_manifest": self.packages_without_manifest,
                "duplicates_skipped": self.duplicates_skipped,
                "variant_names": self.variant_names,
                "variant_items": self.variant_items,
                "symbol_pack_names": self.symbol_pack_names,
                "symbol_pack_items": self.symbol_pack_items,
                "last_init_duration_ms": self.last_init_duration_ms,
                "resolutions": dict(self.resolutions),
            }


class CatalogMetricsExporter:
    """
    Prometheus exporter for CatalogMetrics.

    Usage:
        registry = CollectorRegistry()
        exporter = CatalogMetricsExporter(registry=registry)
        exporter.update(catalog.metrics)
        # generate_latest(registry) -> bytes for a /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """
        Initialize exporter.

        Args:
            registry: Prometheus CollectorRegistry. If None, a private one is created.
        """
        self._registry = registry or CollectorRegistry()

        self._init_cycles = Counter(
            "packcatalog_init_cycles",
            "Catalog initialization cycles attempted",
            registry=self._registry,
        )
        self._init_failures = Counter(
            "packcatalog_init_failures",
            "Catalog initialization cycles that failed",
            registry=self._registry,
        )
        self._packages_scanned = Counter(
            "packcatalog_packages_scanned",
            "Pack archives found on the search paths",
            registry=self._registry,
        )
        self._packages_without_manifest = Counter(
            "packcatalog_packages_without_manifest",
            "Pack archives skipped because they carry no manifest",
            registry=self._registry,
        )
        self._resolutions = Counter(
            "packcatalog_resource_resolutions",
            "Resource lookups by the fallback step that answered them",
            ["outcome"],
            registry=self._registry,
        )
        self._names = Gauge(
            "packcatalog_registered_names",
            "Distinct names currently registered",
            ["kind"],
            registry=self._registry,
        )
        self._items = Gauge(
            "packcatalog_registered_items",
            "Registered items (all versions) currently in the catalog",
            ["kind"],
            registry=self._registry,
        )
        self._init_duration_ms = Gauge(
            "packcatalog_last_init_duration_ms",
            "Duration of the most recent initialization in milliseconds",
            registry=self._registry,
        )

        # Last seen cumulative values; counters advance by delta
        self._last: dict[str, int] = {}

    @property
    def registry(self) -> CollectorRegistry:
        """Get the Prometheus CollectorRegistry."""
        return self._registry

    def update(self, metrics: CatalogMetrics) -> None:
        """Sync Prometheus metrics from a CatalogMetrics instance."""
        snapshot = metrics.to_dict()

        self._advance(self._init_cycles, "init_cycles", snapshot["init_cycles"])
        self._advance(self._init_failures, "init_failures", snapshot["init_failures"])
        self._advance(self._packages_scanned, "packages_scanned", snapshot["packages_scanned"])
        self._advance(
            self._packages_without_manifest,
            "packages_without_manifest",
            snapshot["packages_without_manifest"],
        )
        resolutions = snapshot["resolutions"]
        if not isinstance(resolutions, dict):
            msg = f"resolutions snapshot must be a dict, got {type(resolutions).__name__}"
            raise TypeError(msg)
        for outcome, count in resolutions.items():
            self._advance(self._resolutions.labels(outcome=outcome), f"res:{outcome}", count)

        self._names.labels(kind="variants").set(snapshot["variant_names"])  # type: ignore[arg-type]
        self._names.labels(kind="symbols").set(snapshot["symbol_pack_names"])  # type: ignore[arg-type]
        self._items.labels(kind="variants").set(snapshot["variant_items"])  # type: ignore[arg-type]
        self._items.labels(kind="symbols").set(snapshot["symbol_pack_items"])  # type: ignore[arg-type]
        self._init_duration_ms.set(snapshot["last_init_duration_ms"])  # type: ignore[arg-type]

    def _advance(self, counter: Counter, key: str, current: object) -> None:
        value = int(current)  # type: ignore[call-overload]
        delta = value - self._last.get(key, 0)
        if delta > 0:
            counter.inc(delta)
        self._last[key] = value

    def reset_counter_tracking(self) -> None:
        """
        Reset internal counter tracking.

        Does NOT reset the Prometheus counters themselves.
        """
        self._last.clear()
