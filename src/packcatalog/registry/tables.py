"""Name-keyed registry tables.

An ItemTable maps lowercase names to VersionGroups. Each group holds every
registered version of one name; versions are unique within a group. The
variant table also keeps an alias index pointing additional lowercase names
at existing groups.

Tables are filled once during catalog initialization and only read
afterwards. The sorted "newest per name" snapshot is rebuilt lazily when
the number of groups no longer matches the snapshot length.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from packcatalog.errors import AliasConflictError, DuplicateVersionError
from packcatalog.registry.manifest import PackKind
from packcatalog.registry.version import NEWEST, OLDEST, format_version, select_version

if TYPE_CHECKING:
    from collections.abc import Iterator

    from packcatalog.registry.manifest import ManifestEntry
    from packcatalog.registry.package import PackageLocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredItem:
    """A manifest entry admitted into a table.

    Attributes:
        name: Lowercase lookup key.
        display_name: Name as written in the manifest.
        version: Version number (unique within the name).
        kind: Table the item belongs to.
        source: Archive the item came from.
        package_name: File name of that archive (used for deconfliction).
        payload: Descriptor passed through from the manifest.
    """

    name: str
    display_name: str
    version: float
    kind: PackKind
    source: PackageLocation
    package_name: str
    payload: Any = field(default=None, compare=False, repr=False)

    def describe(self) -> str:
        """Human readable one-liner for error messages."""
        return (
            f"name={self.display_name}; version={format_version(self.version)}; "
            f"package={self.package_name}; url={self.source.uri}"
        )


class VersionGroup:
    """All registered versions of one name, in admission order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: list[RegisteredItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[RegisteredItem]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"VersionGroup({self.name!r}, versions={self.versions()})"

    def find(self, version: float) -> RegisteredItem | None:
        """Item with exactly this version, if any."""
        for item in self._items:
            if item.version == version:
                return item
        return None

    def add(self, item: RegisteredItem) -> bool:
        """Add ``item`` unless its version is already present.

        Returns:
            True if added, False if the version already exists.
        """
        if self.find(item.version) is not None:
            return False
        self._items.append(item)
        return True

    def get(self, selector: object, *, strict: bool = False) -> RegisteredItem | None:
        """Resolve a version selector against this group (see select_version)."""
        return select_version(self._items, selector, strict=strict)

    def newest(self) -> RegisteredItem:
        """Item with the highest version."""
        item = self.get(NEWEST)
        if item is None:
            msg = f"Version group {self.name!r} is empty"
            raise RuntimeError(msg)
        return item

    def oldest(self) -> RegisteredItem:
        """Item with the lowest version."""
        item = self.get(OLDEST)
        if item is None:
            msg = f"Version group {self.name!r} is empty"
            raise RuntimeError(msg)
        return item

    def versions(self) -> list[float]:
        """All versions, in admission order."""
        return [item.version for item in self._items]


class ItemTable:
    """Registry table for one pack kind.

    Args:
        kind: Which pack kind this table holds.
        allow_aliases: Whether alias entries are indexed (variants only).
        tolerate_duplicates: Skip duplicate versions with a warning instead of
            raising. Used in shared-namespace mode, where one archive can be
            surfaced more than once.
    """

    def __init__(
        self,
        kind: PackKind,
        *,
        allow_aliases: bool | None = None,
        tolerate_duplicates: bool = False,
    ) -> None:
        self.kind = kind
        self.allow_aliases = kind is PackKind.VARIANTS if allow_aliases is None else allow_aliases
        self.tolerate_duplicates = tolerate_duplicates
        self._groups: dict[str, VersionGroup] = {}
        self._aliases: dict[str, VersionGroup] = {}
        self._snapshot: list[RegisteredItem] = []
        self._snapshot_lock = threading.Lock()
        self.duplicates_skipped = 0

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.group(name) is not None

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def admit(
        self,
        entry: ManifestEntry,
        package_name: str,
        location: PackageLocation,
    ) -> RegisteredItem | None:
        """Register one manifest entry.

        Args:
            entry: Entry read from the pack's manifest.
            package_name: Archive file name.
            location: Archive location.

        Returns:
            The registered item, or None if a duplicate was tolerated.

        Raises:
            DuplicateVersionError: Same name and version already registered.
            AliasConflictError: An alias (or the name itself) already belongs
                to a differently named group.
        """
        item = RegisteredItem(
            name=entry.name.lower(),
            display_name=entry.name,
            version=entry.version,
            kind=self.kind,
            source=location,
            package_name=package_name,
            payload=entry.payload,
        )

        if item.name in self._aliases:
            other = self._aliases[item.name]
            msg = (
                f"Name '{entry.name}' is already used as an alias of '{other.name}'.\n"
                f"Item: {item.describe()}"
            )
            raise AliasConflictError(msg)

        group = self._groups.get(item.name)
        if group is None:
            group = VersionGroup(item.name)
            self._groups[item.name] = group

        if not group.add(item):
            existing = group.find(item.version)
            if existing is None:
                msg = f"Version {item.version} rejected but not found in group {item.name!r}"
                raise RuntimeError(msg)
            if self.tolerate_duplicates:
                self.duplicates_skipped += 1
                logger.warning(
                    "Skipping duplicate version",
                    extra={"kind": self.kind.value, "item": item.describe()},
                )
                return None
            msg = (
                f"Two {self.kind.value} with identical version numbers have been found.\n"
                f"Conflicting version: {format_version(item.version)}\n"
                f"1: {item.describe()}\n"
                f"2: {existing.describe()}"
            )
            raise DuplicateVersionError(msg)

        if self.allow_aliases:
            for alias in entry.aliases:
                self._map_alias(alias, group, item)

        return item

    def _map_alias(self, alias: str, group: VersionGroup, item: RegisteredItem) -> None:
        key = alias.strip().lower()
        if not key or key == group.name:
            return

        owner = self._aliases.get(key)
        if owner is None:
            owner = self._groups.get(key)
        if owner is None:
            self._aliases[key] = group
            return
        if owner is group:
            return

        msg = (
            f"Two {self.kind.value} have a conflicting (non-unique) alias '{key}'.\n"
            f"1: {item.describe()}\n"
            f"2: {owner.oldest().describe()} (check all versions with this name)"
        )
        raise AliasConflictError(msg)

    def clear(self) -> None:
        """Drop every group, alias and the snapshot."""
        with self._snapshot_lock:
            self._groups.clear()
            self._aliases.clear()
            self._snapshot = []
            self.duplicates_skipped = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def group(self, name: str) -> VersionGroup | None:
        """Group for a name or alias (case-insensitive)."""
        key = name.lower()
        group = self._groups.get(key)
        if group is None:
            group = self._aliases.get(key)
        return group

    def groups(self) -> list[VersionGroup]:
        """All groups (aliases excluded)."""
        return list(self._groups.values())

    def aliases(self) -> dict[str, str]:
        """Alias -> canonical lowercase name."""
        return {alias: group.name for alias, group in self._aliases.items()}

    def item_count(self) -> int:
        """Total number of registered items across all versions."""
        return sum(len(group) for group in self._groups.values())

    def latest(self) -> list[RegisteredItem]:
        """Newest version of every name, sorted by name."""
        with self._snapshot_lock:
            if len(self._snapshot) != len(self._groups):
                self._snapshot = sorted(
                    (group.newest() for group in self._groups.values()),
                    key=lambda item: item.name,
                )
            return list(self._snapshot)
