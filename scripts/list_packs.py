#!/usr/bin/env python3
"""
List the variants and symbol packs found on the search paths.

Builds a catalog from --search-path (repeatable) and/or --config YAML,
prints every registered name with all of its versions, and exits 0.
Exits 1 if initialization fails.

Examples:
    python scripts/list_packs.py --search-path ~/.packs
    python scripts/list_packs.py --config packs.yaml --json
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

from packcatalog.catalog import Catalog
from packcatalog.config import CatalogConfig, load_config
from packcatalog.errors import CatalogInitError
from packcatalog.logging_config import setup_logging
from packcatalog.registry.manifest import PackKind
from packcatalog.registry.version import format_version


def build_config(
    search_paths: list[Path],
    config_path: Path | None,
    *,
    allow_no_symbols: bool = False,
) -> CatalogConfig:
    """Merge --config and --search-path into one CatalogConfig.

    Search paths given on the command line come after those in the file.
    """
    base = load_config(config_path) if config_path is not None else CatalogConfig()
    updates: dict[str, Any] = {}
    if search_paths:
        updates["search_paths"] = (*base.search_paths, *search_paths)
    if allow_no_symbols:
        updates["require_symbol_packs"] = False
    if not updates:
        return base
    return CatalogConfig.model_validate({**base.model_dump(), **updates})


def collect(catalog: Catalog) -> dict[str, list[dict[str, Any]]]:
    """Name, versions and aliases of everything in the catalog."""
    aliases: dict[str, list[str]] = {}
    for alias, name in sorted(catalog.aliases().items()):
        aliases.setdefault(name, []).append(alias)

    result: dict[str, list[dict[str, Any]]] = {}
    for kind in (PackKind.VARIANTS, PackKind.SYMBOLS):
        rows: list[dict[str, Any]] = []
        for item in catalog.list_latest(kind):
            rows.append(
                {
                    "name": item.display_name,
                    "versions": catalog.get_versions(kind, item.name),
                    "aliases": aliases.get(item.name, []) if kind is PackKind.VARIANTS else [],
                    "package": item.package_name,
                }
            )
        result[kind.value] = rows
    return result


def format_listing(listing: dict[str, list[dict[str, Any]]]) -> str:
    """Plain text rendering of collect() output."""
    lines: list[str] = []
    for kind, title in (("variants", "Variants"), ("symbols", "Symbol packs")):
        rows = listing.get(kind, [])
        lines.append(f"=== {title} ({len(rows)}) ===")
        for row in rows:
            versions = ", ".join(format_version(v) for v in row["versions"])
            line = f"  {row['name']} [{versions}] ({row['package']})"
            if row["aliases"]:
                line += f" aliases: {', '.join(row['aliases'])}"
            lines.append(line)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="List variant and symbol packs found on the search paths.",
    )
    parser.add_argument(
        "--search-path",
        type=Path,
        action="append",
        default=[],
        help="Directory to scan for packs (repeatable)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Catalog config YAML",
    )
    parser.add_argument(
        "--allow-no-symbols",
        action="store_true",
        help="Do not fail when no symbol pack is found",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the listing as JSON",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output to stderr",
    )
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        json_format=False,
    )

    config = build_config(
        args.search_path,
        args.config,
        allow_no_symbols=args.allow_no_symbols,
    )
    catalog = Catalog(config)
    try:
        catalog.initialize()
    except CatalogInitError as e:
        print(f"ERROR: {e}")
        return 1

    listing = collect(catalog)
    if args.json:
        print(orjson.dumps(listing, option=orjson.OPT_INDENT_2).decode())
    else:
        print(format_listing(listing))
    return 0


if __name__ == "__main__":
    sys.exit(main())
