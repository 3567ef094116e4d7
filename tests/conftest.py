"""Shared fixtures: real zip packs written to tmp_path."""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import orjson
import pytest

PackFiles = dict[str, bytes | str]


def write_archive(path: Path, files: PackFiles) -> Path:
    """Write a zip archive containing ``files`` (member name -> content)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def variant(name: str, version: float, **fields: Any) -> dict[str, Any]:
    """One variants.json entry."""
    return {"name": name, "version": version, **fields}


def _variant_pack(
    directory: Path,
    file_name: str,
    variants: list[dict[str, Any]],
    files: PackFiles | None = None,
) -> Path:
    content: PackFiles = {"variants.json": orjson.dumps({"variants": variants})}
    content.update(files or {})
    return write_archive(directory / file_name, content)


def _symbol_pack(
    directory: Path,
    file_name: str,
    name: str,
    version: float,
    files: PackFiles | None = None,
    **fields: Any,
) -> Path:
    manifest = {"name": name, "version": version, **fields}
    content: PackFiles = {"symbols.json": orjson.dumps(manifest)}
    content.update(files or {})
    return write_archive(directory / file_name, content)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """setup_logging replaces root handlers; put them back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def pack_dir(tmp_path: Path) -> Path:
    """Empty search directory."""
    directory = tmp_path / "packs"
    directory.mkdir()
    return directory


@pytest.fixture
def make_variant_pack() -> Callable[..., Path]:
    """Builder: make_variant_pack(dir, "XVariant.zip", [variant(...)], files)."""
    return _variant_pack


@pytest.fixture
def make_symbol_pack() -> Callable[..., Path]:
    """Builder: make_symbol_pack(dir, "XSymbols.zip", name, version, files)."""
    return _symbol_pack


@pytest.fixture
def make_archive() -> Callable[[Path, PackFiles], Path]:
    """Builder for arbitrary zip archives."""
    return write_archive


@pytest.fixture
def variant_entry() -> Callable[..., dict[str, Any]]:
    """Builder for one variants.json entry."""
    return variant
