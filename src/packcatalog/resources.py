"""Resolution of pack-relative resource references.

A reference is a string such as ``"maps/standard.svg"`` (relative to the
item's pack) or an absolute URL such as ``"https://host/x.svg"``. The
resolver turns it into a ResourceHandle using, in order:

1. Deconfliction on a shared namespace (only when one is configured):
   among every resource with that path, pick the one whose URL names the
   item's package.
2. Absolute references are returned as-is.
3. The item's own archive.

Resolving never reads resource bytes. ``ResourceHandle.open()`` does, and
releases everything it opened when the ``with`` block exits.
"""

from __future__ import annotations

import logging
import urllib.request
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol
from urllib.parse import unquote, urlsplit

from packcatalog.registry.package import (
    PackageLocation,
    ZipPackageContent,
    normalize_member_path,
    open_member,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from contextlib import AbstractContextManager

    from packcatalog.metrics import CatalogMetrics
    from packcatalog.registry.package import PackageContent
    from packcatalog.registry.tables import RegisteredItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceHandle:
    """A resolved, loadable resource.

    Attributes:
        url: Where the resource lives. Archive members use
            ``file:///dir/Pack.zip!/path`` form.
        location: Archive holding the resource, if it lives in one.
    """

    url: str
    location: PackageLocation | None = None
    _opener: Callable[[], AbstractContextManager[IO[bytes]]] | None = field(
        default=None, repr=False, compare=False
    )

    def open(self) -> AbstractContextManager[IO[bytes]]:
        """Open the resource for binary reading (use as a context manager)."""
        if self._opener is not None:
            return self._opener()
        return _open_url(self.url)

    def read_bytes(self) -> bytes:
        """Read the whole resource."""
        with self.open() as stream:
            return stream.read()


@contextmanager
def _open_url(url: str) -> Iterator[IO[bytes]]:
    parts = urlsplit(url)
    if parts.scheme == "file":
        with Path(urllib.request.url2pathname(parts.path)).open("rb") as stream:
            yield stream
        return
    with urllib.request.urlopen(url) as stream:  # noqa: S310 - caller supplied URL
        yield stream


def is_absolute_reference(ref: str) -> bool:
    """True if ``ref`` carries its own scheme (``file:``, ``https:``...).

    Single letter schemes are Windows drive letters, not schemes.
    """
    return len(urlsplit(ref).scheme) > 1


def member_handle(
    factory: Callable[[PackageLocation], PackageContent],
    location: PackageLocation,
    member: str,
) -> ResourceHandle:
    """Handle for one archive member, opened through ``factory`` on demand."""
    return ResourceHandle(
        url=location.member_url(member),
        location=location,
        _opener=partial(open_member, factory, location, member),
    )


class SharedNamespace(Protocol):
    """A runtime that flattens many archives into one resource namespace."""

    def find_resources(self, path: str) -> list[ResourceHandle]:
        """Every resource on the namespace stored under ``path``."""
        ...


class FlattenedNamespace:
    """SharedNamespace over an ordered list of archives.

    Args:
        archives: Archive files forming the namespace, searched in order.
        content_factory: Opens archives (default: ZipPackageContent).
    """

    def __init__(
        self,
        archives: Sequence[Path | str],
        content_factory: Callable[[PackageLocation], PackageContent] = ZipPackageContent,
    ) -> None:
        self.locations = [PackageLocation.from_path(a) for a in archives]
        self._content_factory = content_factory

    def find_resources(self, path: str) -> list[ResourceHandle]:
        member = normalize_member_path(path)
        if member is None:
            return []

        found: list[ResourceHandle] = []
        for location in self.locations:
            try:
                with self._content_factory(location) as content:
                    present = content.has(member)
            except (OSError, zipfile.BadZipFile) as e:
                logger.warning(
                    "Cannot open namespace archive",
                    extra={"package": location.name, "error": str(e)},
                )
                continue
            if present:
                found.append(member_handle(self._content_factory, location, member))
        return found


def _url_path(url: str) -> str:
    return unquote(urlsplit(url).path)


class ResourceResolver:
    """Resolves resource references for registered items.

    Args:
        content_factory: Opens a pack archive (default: ZipPackageContent).
        namespace: Shared namespace; enables deconfliction when set.
        metrics: Receives one outcome per resolution.
    """

    def __init__(
        self,
        content_factory: Callable[[PackageLocation], PackageContent] = ZipPackageContent,
        *,
        namespace: SharedNamespace | None = None,
        metrics: CatalogMetrics | None = None,
    ) -> None:
        self._content_factory = content_factory
        self.namespace = namespace
        self._metrics = metrics

    def resolve(self, item: RegisteredItem, ref: str) -> ResourceHandle | None:
        """Resolve ``ref`` against the pack ``item`` came from.

        Args:
            item: Registered variant or symbol pack.
            ref: Pack-relative path or absolute URL.

        Returns:
            Handle, or None if no fallback step could resolve it.

        Raises:
            ValueError: If item or ref is None.
        """
        if item is None:
            msg = "item must not be None"
            raise ValueError(msg)
        if ref is None:
            msg = "resource reference must not be None"
            raise ValueError(msg)

        if self.namespace is not None:
            marker = f"{item.package_name}!"
            handle = self._deconflict(ref, lambda path: marker in path, first=True)
            if handle is not None:
                return self._done("deconflicted", handle)

        return self._resolve_local(item.source, ref)

    def resolve_in_package(self, location: PackageLocation, ref: str) -> ResourceHandle | None:
        """Resolve ``ref`` against a bare package, before any item exists.

        Deconfliction here matches the package file name anywhere in the
        resource URL and accepts any such match.
        """
        if location is None or ref is None:
            msg = "location and resource reference must not be None"
            raise ValueError(msg)

        if self.namespace is not None:
            handle = self._deconflict(ref, lambda path: location.name in path, first=False)
            if handle is not None:
                return self._done("deconflicted", handle)

        return self._resolve_local(location, ref)

    def _deconflict(
        self,
        ref: str,
        accept: Callable[[str], bool],
        *,
        first: bool,
    ) -> ResourceHandle | None:
        if self.namespace is None:
            return None
        matches = [h for h in self.namespace.find_resources(ref) if accept(_url_path(h.url))]
        if not matches:
            return None
        if len(matches) > 1 and first:
            logger.debug(
                "Multiple namespace matches, taking first",
                extra={"ref": ref, "match_count": len(matches)},
            )
        return matches[0]

    def _resolve_local(self, location: PackageLocation, ref: str) -> ResourceHandle | None:
        if is_absolute_reference(ref):
            return self._done("absolute", ResourceHandle(url=ref))

        member = normalize_member_path(ref)
        if member is not None:
            try:
                with self._content_factory(location) as content:
                    present = content.has(member)
            except (OSError, zipfile.BadZipFile) as e:
                self._record("unresolved")
                logger.warning(
                    "Cannot open package to resolve resource",
                    extra={"ref": ref, "package": location.name, "error": str(e)},
                )
                return None
            if present:
                return self._done("package", member_handle(self._content_factory, location, member))

        self._record("unresolved")
        logger.debug("Unresolved resource", extra={"ref": ref, "package": location.name})
        return None

    def _done(self, outcome: str, handle: ResourceHandle) -> ResourceHandle:
        self._record(outcome)
        return handle

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_resolution(outcome)
