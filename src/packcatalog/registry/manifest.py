"""Pack manifests.

Every pack archive may carry one manifest at its root describing the items
it provides:

variants.json (variant packs, one or more variants):
    {
        "variants": [
            {
                "name": "Standard",
                "version": 1.0,
                "aliases": ["classic"],
                "description": "...",
                "map_graphics": [
                    {"name": "Simple", "uri": "simple.svg",
                     "preferred_symbol_pack": "Simple"}
                ]
            }
        ]
    }

symbols.json (symbol packs, exactly one pack):
    {"name": "Simple", "version": 1.0, "svg_uri": "symbols.svg"}

Only the structure needed to register items is checked here (name and a
positive version). Everything else rides along as the entry payload.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from packcatalog.errors import ManifestParseError
from packcatalog.registry.package import ZipPackageContent

if TYPE_CHECKING:
    from collections.abc import Callable

    from packcatalog.registry.package import PackageContent, PackageLocation

logger = logging.getLogger(__name__)

VARIANT_MANIFEST_NAME = "variants.json"
SYMBOL_MANIFEST_NAME = "symbols.json"


class PackKind(str, Enum):
    """The two independent kinds of packs (and registry tables)."""

    VARIANTS = "variants"
    SYMBOLS = "symbols"


@dataclass(frozen=True)
class ManifestEntry:
    """One named, versioned item read from a manifest.

    Attributes:
        name: Item name as written in the manifest.
        version: Positive version number.
        aliases: Alternate lookup names (variants only).
        payload: Parsed descriptor, passed through untouched.
    """

    name: str
    version: float
    aliases: tuple[str, ...] = ()
    payload: Any = field(default=None, compare=False)


class MapGraphicDescriptor(BaseModel):
    """A map rendering offered by a variant."""

    model_config = ConfigDict(frozen=True, extra="allow", str_strip_whitespace=True)

    name: str
    uri: str
    default: bool = False
    thumbnail_uri: str | None = None
    preferred_symbol_pack: str | None = None

    @property
    def preferred_symbol_pack_name(self) -> str | None:
        """Name of the symbol pack this graphic was drawn for, if any."""
        return self.preferred_symbol_pack


class VariantDescriptor(BaseModel):
    """Descriptor of one variant."""

    model_config = ConfigDict(frozen=True, extra="allow", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    version: float = Field(gt=0)
    aliases: tuple[str, ...] = ()
    description: str = ""
    default: bool = False
    map_graphics: tuple[MapGraphicDescriptor, ...] = ()

    @field_validator("aliases", mode="before")
    @classmethod
    def split_alias_csv(cls, v: Any) -> Any:
        """Accept aliases as a comma separated string as well as a list."""
        if v is None:
            return ()
        if isinstance(v, str):
            return tuple(part.strip() for part in v.split(","))
        return v

    def default_map_graphic(self) -> MapGraphicDescriptor | None:
        """The map graphic flagged as default, else the first one."""
        for graphic in self.map_graphics:
            if graphic.default:
                return graphic
        return self.map_graphics[0] if self.map_graphics else None


class VariantManifest(BaseModel):
    """Top-level shape of variants.json."""

    model_config = ConfigDict(frozen=True, extra="allow")

    variants: tuple[VariantDescriptor, ...]


class SymbolPackDescriptor(BaseModel):
    """Descriptor of one symbol pack (symbols.json)."""

    model_config = ConfigDict(frozen=True, extra="allow", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    version: float = Field(gt=0)
    description: str = ""
    thumbnail_uri: str | None = None
    svg_uri: str | None = None


class ManifestLoader(Protocol):
    """Turns a pack archive into manifest entries."""

    def try_load(
        self,
        location: PackageLocation,
        manifest_name: str,
    ) -> list[ManifestEntry] | None:
        """Load the manifest named ``manifest_name`` from ``location``.

        Returns:
            Entries, or None if the archive has no such manifest.

        Raises:
            ManifestParseError: If the manifest exists but is malformed.
        """
        ...


def parse_variant_manifest(data: Any) -> list[ManifestEntry]:
    """Shape decoded variants.json content into entries.

    Raises:
        ValidationError: If the structure is wrong.
    """
    manifest = VariantManifest.model_validate(data)
    return [
        ManifestEntry(
            name=variant.name,
            version=variant.version,
            aliases=tuple(a for a in variant.aliases if a),
            payload=variant,
        )
        for variant in manifest.variants
    ]


def parse_symbol_manifest(data: Any) -> list[ManifestEntry]:
    """Shape decoded symbols.json content into a single entry.

    Raises:
        ValidationError: If the structure is wrong.
    """
    pack = SymbolPackDescriptor.model_validate(data)
    return [ManifestEntry(name=pack.name, version=pack.version, payload=pack)]


_PARSERS: dict[PackKind, Callable[[Any], list[ManifestEntry]]] = {
    PackKind.VARIANTS: parse_variant_manifest,
    PackKind.SYMBOLS: parse_symbol_manifest,
}


class JsonManifestLoader:
    """ManifestLoader for JSON manifests stored inside pack archives.

    Args:
        kind: Which descriptor shape to expect.
        content_factory: Opens a PackageContent for a location
            (default: ZipPackageContent).
    """

    def __init__(
        self,
        kind: PackKind,
        content_factory: Callable[[PackageLocation], PackageContent] = ZipPackageContent,
    ) -> None:
        self.kind = kind
        self._content_factory = content_factory
        self._parse = _PARSERS[kind]

    def try_load(
        self,
        location: PackageLocation,
        manifest_name: str,
    ) -> list[ManifestEntry] | None:
        try:
            with self._content_factory(location) as content:
                if not content.has(manifest_name):
                    return None
                with content.open(manifest_name) as stream:
                    raw = stream.read()
        except (OSError, zipfile.BadZipFile) as e:
            msg = f"Cannot read package archive: {e}"
            raise ManifestParseError(msg, location) from e

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            msg = f"Malformed {manifest_name}: {e}"
            raise ManifestParseError(msg, location) from e

        try:
            entries = self._parse(data)
        except ValidationError as e:
            msg = f"Invalid {manifest_name}: {e.error_count()} error(s): {_first_error(e)}"
            raise ManifestParseError(msg, location) from e

        logger.debug(
            "Loaded manifest",
            extra={
                "package": location.name,
                "manifest": manifest_name,
                "entry_count": len(entries),
            },
        )
        return entries


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    where = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{where}: {first.get('msg', 'invalid')}"
