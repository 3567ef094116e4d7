"""Pack discovery and archive access.

Packs are archives (zip or jar) sitting directly in one of the configured
search directories. The scanner only inspects file names; reading archive
members goes through the PackageContent capability so the rest of the
catalog never depends on a particular container format.
"""

from __future__ import annotations

import logging
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import IO, TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from types import TracebackType

logger = logging.getLogger(__name__)

VARIANT_SUFFIXES: frozenset[str] = frozenset(
    {
        "Variant.zip",
        "Variants.zip",
        "Variant.jar",
        "Variants.jar",
    }
)

SYMBOL_SUFFIXES: frozenset[str] = frozenset(
    {
        "Symbols.zip",
        "Symbols.jar",
    }
)


@dataclass(frozen=True)
class PackageLocation:
    """Address of one pack archive.

    Attributes:
        path: Absolute filesystem path of the archive.
    """

    path: Path

    @classmethod
    def from_path(cls, path: Path | str) -> PackageLocation:
        """Create a location from a (possibly relative) path."""
        return cls(path=Path(path).resolve())

    @property
    def name(self) -> str:
        """Archive file name, e.g. ``StandardVariant.zip``."""
        return self.path.name

    @property
    def uri(self) -> str:
        """``file:`` URI of the archive."""
        return self.path.as_uri()

    @property
    def jar_url(self) -> str:
        """Archive root URL in ``jar:`` form: ``jar:file:///dir/X.zip!/``."""
        return f"jar:{self.uri}!/"

    def member_url(self, member: str) -> str:
        """URL of one archive member: ``file:///dir/X.zip!/images/map.svg``."""
        return f"{self.uri}!/{member}"

    def __str__(self) -> str:
        return self.uri


def _matches_suffix(file_name: str, suffixes: Iterable[str]) -> bool:
    return any(file_name.endswith(suffix) for suffix in suffixes)


def scan_packages(
    search_paths: Sequence[Path | str],
    suffixes: Iterable[str],
) -> list[PackageLocation]:
    """Find pack archives directly inside the given directories.

    Only file names are inspected. A directory that cannot be listed
    contributes nothing and is logged; it does not abort the scan.

    Args:
        search_paths: Directories to list (non-recursive).
        suffixes: Accepted file name endings.

    Returns:
        One PackageLocation per matching file.

    Raises:
        ValueError: If a search path entry is None.
    """
    suffix_set = frozenset(suffixes)
    found: list[PackageLocation] = []

    for search_path in search_paths:
        if search_path is None:
            msg = "search path entries must not be None"
            raise ValueError(msg)

        directory = Path(search_path)
        try:
            children = sorted(directory.iterdir())
        except OSError as e:
            logger.warning(
                "Cannot list search path",
                extra={"search_path": str(directory), "error": str(e)},
            )
            continue

        for child in children:
            if not _matches_suffix(child.name, suffix_set):
                continue
            try:
                is_file = child.is_file()
            except OSError:
                is_file = False
            if is_file:
                found.append(PackageLocation.from_path(child))

    logger.debug(
        "Scanned search paths",
        extra={"search_path_count": len(search_paths), "package_count": len(found)},
    )
    return found


def normalize_member_path(path: str) -> str | None:
    """Normalize a pack-relative path to an archive member name.

    Leading slashes and ``.`` components are dropped. Paths that climb out
    of the archive (``..``) or are empty yield None.
    """
    pure = PurePosixPath(path.replace("\\", "/"))
    parts = [part for part in pure.parts if part not in ("/", ".")]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


class PackageContent(Protocol):
    """Read access to the members of one pack archive."""

    location: PackageLocation

    def has(self, path: str) -> bool:
        """Return True if the archive contains ``path``."""
        ...

    def open(self, path: str) -> IO[bytes]:
        """Open a member for reading. Raises KeyError if missing."""
        ...

    def names(self) -> list[str]:
        """All member names."""
        ...

    def close(self) -> None:
        """Release the underlying archive."""
        ...

    def __enter__(self) -> PackageContent: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


class ZipPackageContent:
    """PackageContent over a zip or jar file.

    The archive is opened lazily on first access and released by
    :meth:`close` (or leaving the ``with`` block).
    """

    def __init__(self, location: PackageLocation) -> None:
        self.location = location
        self._archive: zipfile.ZipFile | None = None

    def _zip(self) -> zipfile.ZipFile:
        if self._archive is None:
            self._archive = zipfile.ZipFile(self.location.path)
        return self._archive

    def has(self, path: str) -> bool:
        member = normalize_member_path(path)
        if member is None:
            return False
        try:
            self._zip().getinfo(member)
        except KeyError:
            return False
        return True

    def open(self, path: str) -> IO[bytes]:
        member = normalize_member_path(path)
        if member is None:
            raise KeyError(path)
        return self._zip().open(member)

    def names(self) -> list[str]:
        return self._zip().namelist()

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None

    def __enter__(self) -> ZipPackageContent:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


@contextmanager
def open_member(
    factory: Callable[[PackageLocation], PackageContent],
    location: PackageLocation,
    path: str,
) -> Iterator[IO[bytes]]:
    """Open one member with its own transient PackageContent.

    Both the member stream and the archive are released on every exit path.
    """
    with factory(location) as content, content.open(path) as stream:
        yield stream
