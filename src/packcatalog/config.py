"""Catalog configuration.

CatalogConfig is frozen (immutable). It can be built directly, from the
environment (``CatalogConfig.from_env``) or from a YAML file
(``load_config``):

    search_paths:
      - ~/.packs
      - /usr/share/game/packs
    shared_namespace: []
    require_symbol_packs: true
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, field_validator

from packcatalog.registry.manifest import SYMBOL_MANIFEST_NAME, VARIANT_MANIFEST_NAME
from packcatalog.registry.package import SYMBOL_SUFFIXES, VARIANT_SUFFIXES

if TYPE_CHECKING:
    from collections.abc import Mapping

SEARCH_PATH_ENV = "PACKCATALOG_SEARCH_PATH"
SHARED_NAMESPACE_ENV = "PACKCATALOG_SHARED_NAMESPACE"


class CatalogConfig(BaseModel):
    """Where to look for packs and how to read them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search_paths: tuple[Path, ...] = Field(
        default=(),
        description="Directories scanned (non-recursively) for pack archives",
    )
    variant_suffixes: frozenset[str] = Field(
        default=VARIANT_SUFFIXES,
        description="File name endings of variant packs",
    )
    symbol_suffixes: frozenset[str] = Field(
        default=SYMBOL_SUFFIXES,
        description="File name endings of symbol packs",
    )
    variant_manifest: str = Field(
        default=VARIANT_MANIFEST_NAME,
        description="Manifest looked up inside variant packs",
    )
    symbol_manifest: str = Field(
        default=SYMBOL_MANIFEST_NAME,
        description="Manifest looked up inside symbol packs",
    )
    shared_namespace: tuple[Path, ...] = Field(
        default=(),
        description="Archives flattened into one shared resource namespace (empty = off)",
    )
    require_symbol_packs: bool = Field(
        default=True,
        description="Fail initialization when no symbol pack is found",
    )

    @field_validator("search_paths", "shared_namespace", mode="before")
    @classmethod
    def expand_paths(cls, v: Any) -> Any:
        """Accept a single path and expand ``~``."""
        if v is None:
            return ()
        if isinstance(v, str | Path):
            v = [v]
        return tuple(Path(p).expanduser() for p in v)

    @field_validator("variant_suffixes", "symbol_suffixes")
    @classmethod
    def non_empty_suffixes(cls, v: frozenset[str]) -> frozenset[str]:
        """Suffix sets must contain at least one non-blank suffix."""
        cleaned = frozenset(s for s in v if s.strip())
        if not cleaned:
            raise ValueError("suffix set must not be empty")
        return cleaned

    @field_validator("variant_manifest", "symbol_manifest")
    @classmethod
    def non_blank_manifest(cls, v: str) -> str:
        """Manifest names must not be blank."""
        if not v.strip():
            raise ValueError("manifest name must not be blank")
        return v.strip()

    @property
    def shared_namespace_enabled(self) -> bool:
        """True when a shared namespace is configured."""
        return bool(self.shared_namespace)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: Any) -> CatalogConfig:
        """Build a config from environment variables.

        ``PACKCATALOG_SEARCH_PATH`` and ``PACKCATALOG_SHARED_NAMESPACE`` hold
        ``os.pathsep`` separated lists.
        """
        env = os.environ if env is None else env
        data: dict[str, Any] = {
            "search_paths": _split_paths(env.get(SEARCH_PATH_ENV, "")),
            "shared_namespace": _split_paths(env.get(SHARED_NAMESPACE_ENV, "")),
        }
        data.update(overrides)
        return cls.model_validate(data)


def _split_paths(value: str) -> list[str]:
    return [p for p in value.split(os.pathsep) if p.strip()]


def load_config(path: Path) -> CatalogConfig:
    """Load a CatalogConfig from a YAML file.

    Relative search paths are resolved against the file's directory.
    """
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    base = Path(path).parent
    for key in ("search_paths", "shared_namespace"):
        value = data.get(key)
        if isinstance(value, str):
            value = [value]
        if value:
            data[key] = [
                p if Path(p).expanduser().is_absolute() else str(base / p) for p in value
            ]
    return CatalogConfig.model_validate(data)
