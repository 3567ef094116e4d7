"""Tests for pack discovery and archive access."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from packcatalog.registry.package import (
    SYMBOL_SUFFIXES,
    VARIANT_SUFFIXES,
    PackageLocation,
    ZipPackageContent,
    normalize_member_path,
    open_member,
    scan_packages,
)


class TestPackageLocation:
    """Tests for PackageLocation."""

    def test_from_path_resolves(self, tmp_path: Path) -> None:
        """Relative paths become absolute."""
        archive = tmp_path / "StandardVariant.zip"
        archive.write_bytes(b"")
        location = PackageLocation.from_path(archive)
        assert location.path.is_absolute()
        assert location.name == "StandardVariant.zip"

    def test_urls(self, tmp_path: Path) -> None:
        """uri, jar_url and member_url share the file: URI."""
        location = PackageLocation.from_path(tmp_path / "X.zip")
        assert location.uri.startswith("file:///")
        assert location.uri.endswith("/X.zip")
        assert location.jar_url == f"jar:{location.uri}!/"
        assert location.member_url("maps/a.svg") == f"{location.uri}!/maps/a.svg"
        assert str(location) == location.uri

    def test_equality_by_path(self, tmp_path: Path) -> None:
        """Two locations for the same file compare equal."""
        a = PackageLocation.from_path(tmp_path / "X.zip")
        b = PackageLocation.from_path(tmp_path / "." / "X.zip")
        assert a == b
        assert hash(a) == hash(b)


class TestScanPackages:
    """Tests for scan_packages."""

    def test_matches_suffixes_only(self, pack_dir: Path) -> None:
        """Only files ending in an accepted suffix are returned."""
        for name in ("StandardVariant.zip", "MoreVariants.jar", "Readme.txt", "SimpleSymbols.zip"):
            (pack_dir / name).write_bytes(b"")

        variants = scan_packages([pack_dir], VARIANT_SUFFIXES)
        symbols = scan_packages([pack_dir], SYMBOL_SUFFIXES)

        assert sorted(loc.name for loc in variants) == ["MoreVariants.jar", "StandardVariant.zip"]
        assert [loc.name for loc in symbols] == ["SimpleSymbols.zip"]

    def test_not_recursive(self, pack_dir: Path) -> None:
        """Archives in subdirectories are ignored."""
        nested = pack_dir / "nested"
        nested.mkdir()
        (nested / "DeepVariant.zip").write_bytes(b"")
        assert scan_packages([pack_dir], VARIANT_SUFFIXES) == []

    def test_directories_with_matching_names_skipped(self, pack_dir: Path) -> None:
        """A directory named like a pack is not a pack."""
        (pack_dir / "FakeVariant.zip").mkdir()
        assert scan_packages([pack_dir], VARIANT_SUFFIXES) == []

    def test_missing_directory_contributes_nothing(
        self, tmp_path: Path, pack_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Unlistable paths are logged and skipped."""
        (pack_dir / "AVariant.zip").write_bytes(b"")
        missing = tmp_path / "does-not-exist"

        with caplog.at_level(logging.WARNING, logger="packcatalog.registry.package"):
            found = scan_packages([missing, pack_dir], VARIANT_SUFFIXES)

        assert [loc.name for loc in found] == ["AVariant.zip"]
        assert "Cannot list search path" in caplog.text

    def test_file_as_search_path_contributes_nothing(self, pack_dir: Path) -> None:
        """A plain file on the search path is not listed."""
        archive = pack_dir / "AVariant.zip"
        archive.write_bytes(b"")
        assert scan_packages([archive], VARIANT_SUFFIXES) == []

    def test_none_entry_raises(self, pack_dir: Path) -> None:
        """None inside the search path list is a caller error."""
        with pytest.raises(ValueError, match="must not be None"):
            scan_packages([pack_dir, None], VARIANT_SUFFIXES)  # type: ignore[list-item]

    def test_multiple_directories(self, tmp_path: Path) -> None:
        """Every directory contributes its matches."""
        for sub in ("one", "two"):
            (tmp_path / sub).mkdir()
            (tmp_path / sub / f"{sub}Variant.zip").write_bytes(b"")
        found = scan_packages([tmp_path / "one", tmp_path / "two"], VARIANT_SUFFIXES)
        assert {loc.name for loc in found} == {"oneVariant.zip", "twoVariant.zip"}


class TestNormalizeMemberPath:
    """Tests for normalize_member_path."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("maps/a.svg", "maps/a.svg"),
            ("/maps/a.svg", "maps/a.svg"),
            ("./maps/./a.svg", "maps/a.svg"),
            ("maps\\a.svg", "maps/a.svg"),
            ("../secret", None),
            ("maps/../../x", None),
            ("", None),
            ("/", None),
        ],
    )
    def test_normalizes(self, path: str, expected: str | None) -> None:
        """Leading slashes and dots are dropped; climbing out yields None."""
        assert normalize_member_path(path) == expected


class TestZipPackageContent:
    """Tests for ZipPackageContent."""

    def test_has_open_names(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """Members can be probed, listed and read."""
        archive = make_archive(pack_dir / "AVariant.zip", {"maps/a.svg": "<svg/>"})
        with ZipPackageContent(PackageLocation.from_path(archive)) as content:
            assert content.has("maps/a.svg")
            assert content.has("/maps/a.svg")
            assert not content.has("maps/b.svg")
            assert not content.has("../maps/a.svg")
            assert content.names() == ["maps/a.svg"]
            with content.open("maps/a.svg") as stream:
                assert stream.read() == b"<svg/>"

    def test_open_missing_raises_key_error(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """Opening a missing member raises KeyError."""
        archive = make_archive(pack_dir / "AVariant.zip", {"a.txt": "x"})
        with ZipPackageContent(PackageLocation.from_path(archive)) as content, pytest.raises(
            KeyError
        ):
            content.open("b.txt")

    def test_lazy_open_and_close(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """The archive is opened on first use and released on close."""
        archive = make_archive(pack_dir / "AVariant.zip", {"a.txt": "x"})
        content = ZipPackageContent(PackageLocation.from_path(archive))
        assert content._archive is None
        content.has("a.txt")
        assert content._archive is not None
        content.close()
        assert content._archive is None

    def test_open_member_releases_everything(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """open_member closes the archive after the block."""
        archive = make_archive(pack_dir / "AVariant.zip", {"a.txt": "hello"})
        opened: list[ZipPackageContent] = []

        def factory(location: PackageLocation) -> ZipPackageContent:
            content = ZipPackageContent(location)
            opened.append(content)
            return content

        with open_member(factory, PackageLocation.from_path(archive), "a.txt") as stream:
            assert stream.read() == b"hello"

        assert len(opened) == 1
        assert opened[0]._archive is None
