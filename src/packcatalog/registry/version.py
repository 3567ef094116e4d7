"""Version selectors and version-group resolution.

A selector is either a positive version number (exact match) or one of the
two sentinels in :class:`Selector`. The legacy numeric sentinels
``VERSION_NEWEST`` (-1000.0) and ``VERSION_OLDEST`` (-2000.0) are accepted
and normalized to the enum.

Exact lookups degrade on a miss: as long as the group is non-empty, a
version that was never registered resolves to the newest item instead of
``None``. Pass ``strict=True`` to get ``None`` instead.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence


class Selector(str, Enum):
    """Sentinel version selectors."""

    NEWEST = "newest"
    OLDEST = "oldest"


NEWEST = Selector.NEWEST
OLDEST = Selector.OLDEST

# Numeric sentinels used by older callers and saved games
VERSION_NEWEST = -1000.0
VERSION_OLDEST = -2000.0

VersionSelector = float | Selector


class Versioned(Protocol):
    """Anything carrying a numeric version."""

    @property
    def version(self) -> float: ...


T = TypeVar("T", bound=Versioned)


def normalize_selector(selector: object) -> VersionSelector:
    """Validate a selector and normalize it.

    Args:
        selector: Positive number, Selector member, "newest"/"oldest",
            or one of the legacy numeric sentinels.

    Returns:
        Selector member or positive float.

    Raises:
        ValueError: If the selector is zero, negative (other than the
            legacy sentinels), a bool, or not a number at all.
    """
    if isinstance(selector, Selector):
        return selector
    if isinstance(selector, str):
        try:
            return Selector(selector.lower())
        except ValueError:
            pass
        msg = f"invalid version or version constant: {selector!r}"
        raise ValueError(msg)
    if isinstance(selector, bool) or not isinstance(selector, int | float):
        msg = f"invalid version or version constant: {selector!r}"
        raise ValueError(msg)

    value = float(selector)
    if value == VERSION_NEWEST:
        return Selector.NEWEST
    if value == VERSION_OLDEST:
        return Selector.OLDEST
    if value <= 0.0 or value != value:  # noqa: PLR0124 - NaN check
        msg = f"invalid version or version constant: {selector!r}"
        raise ValueError(msg)
    return value


def select_version(
    items: Sequence[T],
    selector: object,
    *,
    strict: bool = False,
) -> T | None:
    """Pick one item from a list of differently versioned items.

    Args:
        items: Candidates; versions are unique within the list.
        selector: Exact version or Selector sentinel (see normalize_selector).
        strict: Return None on an exact miss instead of degrading.

    Returns:
        The selected item, or None if ``items`` is empty (or on a strict miss).

    Raises:
        ValueError: If the selector is invalid.
    """
    wanted = normalize_selector(selector)
    if not items:
        return None

    if wanted is Selector.NEWEST:
        return max(items, key=lambda item: item.version)
    if wanted is Selector.OLDEST:
        return min(items, key=lambda item: item.version)

    for item in items:
        if item.version == wanted:
            return item

    if strict:
        return None
    return max(items, key=lambda item: item.version)


def format_version(version: float) -> str:
    """Render a version for messages: 1.0 -> "1.0", 2.25 -> "2.25"."""
    text = f"{version:.6f}".rstrip("0")
    return text + "0" if text.endswith(".") else text
