"""Tests for manifest parsing and loading."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import orjson
import pytest
from pydantic import ValidationError

from packcatalog.errors import ManifestParseError
from packcatalog.registry.manifest import (
    SYMBOL_MANIFEST_NAME,
    VARIANT_MANIFEST_NAME,
    JsonManifestLoader,
    ManifestEntry,
    MapGraphicDescriptor,
    PackKind,
    SymbolPackDescriptor,
    VariantDescriptor,
    parse_symbol_manifest,
    parse_variant_manifest,
)
from packcatalog.registry.package import PackageLocation


class TestVariantDescriptor:
    """Tests for VariantDescriptor."""

    def test_minimal(self) -> None:
        """Name and version are enough."""
        descriptor = VariantDescriptor(name="Standard", version=1.0)
        assert descriptor.aliases == ()
        assert descriptor.map_graphics == ()
        assert descriptor.default_map_graphic() is None

    def test_alias_csv_is_split(self) -> None:
        """A comma separated alias string becomes a tuple."""
        descriptor = VariantDescriptor.model_validate(
            {"name": "Standard", "version": 1, "aliases": "classic, original"}
        )
        assert descriptor.aliases == ("classic", "original")

    @pytest.mark.parametrize("version", [0, -1.0])
    def test_non_positive_version_rejected(self, version: float) -> None:
        """Versions must be positive."""
        with pytest.raises(ValidationError):
            VariantDescriptor(name="Standard", version=version)

    def test_blank_name_rejected(self) -> None:
        """Names must not be blank."""
        with pytest.raises(ValidationError):
            VariantDescriptor(name="   ", version=1.0)

    def test_unknown_fields_kept(self) -> None:
        """Extra manifest fields ride along."""
        descriptor = VariantDescriptor.model_validate(
            {"name": "Standard", "version": 1.0, "starting_time": "Spring 1901"}
        )
        assert descriptor.model_extra == {"starting_time": "Spring 1901"}

    def test_default_map_graphic(self) -> None:
        """The flagged graphic wins, else the first one."""
        simple = {"name": "Simple", "uri": "simple.svg"}
        fancy = {"name": "Fancy", "uri": "fancy.svg", "default": True}

        flagged = VariantDescriptor.model_validate(
            {"name": "S", "version": 1, "map_graphics": [simple, fancy]}
        )
        unflagged = VariantDescriptor.model_validate(
            {"name": "S", "version": 1, "map_graphics": [simple]}
        )

        graphic = flagged.default_map_graphic()
        assert graphic is not None and graphic.name == "Fancy"
        graphic = unflagged.default_map_graphic()
        assert graphic is not None and graphic.name == "Simple"


class TestMapGraphicDescriptor:
    """Tests for MapGraphicDescriptor."""

    def test_preferred_symbol_pack_name(self) -> None:
        """The preferred pack name is exposed as a property."""
        graphic = MapGraphicDescriptor(name="Simple", uri="s.svg", preferred_symbol_pack="Simple")
        assert graphic.preferred_symbol_pack_name == "Simple"
        assert MapGraphicDescriptor(name="x", uri="x.svg").preferred_symbol_pack_name is None


class TestParsers:
    """Tests for parse_variant_manifest and parse_symbol_manifest."""

    def test_variant_entries(self) -> None:
        """Each variant becomes one entry carrying its descriptor."""
        entries = parse_variant_manifest(
            {
                "variants": [
                    {"name": "Standard", "version": 1.0, "aliases": ["classic", ""]},
                    {"name": "Chaos", "version": 2.5},
                ]
            }
        )
        assert entries == [
            ManifestEntry(name="Standard", version=1.0, aliases=("classic",)),
            ManifestEntry(name="Chaos", version=2.5),
        ]
        assert isinstance(entries[0].payload, VariantDescriptor)

    def test_symbol_entry(self) -> None:
        """A symbol manifest yields exactly one entry."""
        entries = parse_symbol_manifest({"name": "Simple", "version": 1.0, "svg_uri": "s.svg"})
        assert len(entries) == 1
        assert entries[0].name == "Simple"
        assert entries[0].aliases == ()
        assert isinstance(entries[0].payload, SymbolPackDescriptor)

    def test_variant_manifest_requires_list(self) -> None:
        """The top-level 'variants' key is required."""
        with pytest.raises(ValidationError):
            parse_variant_manifest({"name": "Standard", "version": 1.0})


class TestJsonManifestLoader:
    """Tests for JsonManifestLoader."""

    def test_loads_variants(
        self,
        pack_dir: Path,
        make_variant_pack: Callable[..., Path],
        variant_entry: Callable[..., dict[str, Any]],
    ) -> None:
        """Entries are read from variants.json inside the archive."""
        archive = make_variant_pack(
            pack_dir, "StandardVariant.zip", [variant_entry("Standard", 1.0, aliases=["classic"])]
        )
        loader = JsonManifestLoader(PackKind.VARIANTS)
        entries = loader.try_load(PackageLocation.from_path(archive), VARIANT_MANIFEST_NAME)
        assert entries is not None
        assert [(e.name, e.version, e.aliases) for e in entries] == [
            ("Standard", 1.0, ("classic",))
        ]

    def test_loads_symbols(self, pack_dir: Path, make_symbol_pack: Callable[..., Path]) -> None:
        """symbols.json yields a single entry."""
        archive = make_symbol_pack(pack_dir, "SimpleSymbols.zip", "Simple", 1.5)
        loader = JsonManifestLoader(PackKind.SYMBOLS)
        entries = loader.try_load(PackageLocation.from_path(archive), SYMBOL_MANIFEST_NAME)
        assert entries is not None
        assert [(e.name, e.version) for e in entries] == [("Simple", 1.5)]

    def test_missing_manifest_returns_none(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """An archive without a manifest is not an error."""
        archive = make_archive(pack_dir / "EmptyVariant.zip", {"readme.txt": "hi"})
        loader = JsonManifestLoader(PackKind.VARIANTS)
        assert loader.try_load(PackageLocation.from_path(archive), VARIANT_MANIFEST_NAME) is None

    def test_malformed_json_raises(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """Broken JSON is a ManifestParseError naming the package."""
        archive = make_archive(pack_dir / "BadVariant.zip", {"variants.json": "{not json"})
        loader = JsonManifestLoader(PackKind.VARIANTS)
        with pytest.raises(ManifestParseError, match="Malformed variants.json") as exc_info:
            loader.try_load(PackageLocation.from_path(archive), VARIANT_MANIFEST_NAME)
        assert exc_info.value.location is not None
        assert "BadVariant.zip" in str(exc_info.value)

    def test_invalid_structure_raises(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """A missing version is a ManifestParseError."""
        manifest = orjson.dumps({"variants": [{"name": "Standard"}]})
        archive = make_archive(pack_dir / "BadVariant.zip", {"variants.json": manifest})
        loader = JsonManifestLoader(PackKind.VARIANTS)
        with pytest.raises(ManifestParseError, match="Invalid variants.json"):
            loader.try_load(PackageLocation.from_path(archive), VARIANT_MANIFEST_NAME)

    def test_not_a_zip_raises(self, pack_dir: Path) -> None:
        """A file that is not an archive is a ManifestParseError."""
        archive = pack_dir / "JunkVariant.zip"
        archive.write_bytes(b"this is not a zip file")
        loader = JsonManifestLoader(PackKind.VARIANTS)
        with pytest.raises(ManifestParseError, match="Cannot read package archive"):
            loader.try_load(PackageLocation.from_path(archive), VARIANT_MANIFEST_NAME)

    def test_custom_manifest_name(
        self, pack_dir: Path, make_archive: Callable[..., Path]
    ) -> None:
        """The manifest name is supplied by the caller."""
        manifest = orjson.dumps({"variants": [{"name": "Standard", "version": 1}]})
        archive = make_archive(pack_dir / "AVariant.zip", {"meta/packs.json": manifest})
        loader = JsonManifestLoader(PackKind.VARIANTS)
        location = PackageLocation.from_path(archive)
        assert loader.try_load(location, VARIANT_MANIFEST_NAME) is None
        entries = loader.try_load(location, "meta/packs.json")
        assert entries is not None and entries[0].name == "Standard"
