"""Autocomplete ranking for location and taxon name inputs.

Suggestions are recomputed on every keystroke, so `search` is a pure
function of its arguments: filter by substring, then sort by
(priority tier, prefix match, name).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

T = TypeVar("T")

LOCATION_LIMIT = 25
RANK_OPTION_LIMIT = 10

# Administrative types, broadest first
LOCATION_TYPE_PRIORITY: dict[str, int] = {
    "Continent": 0,
    "Country": 1,
    "State": 2,
    "Province": 2,
    "Territory": 2,
    "Republic": 2,
    "County": 3,
    "District": 3,
    "Municipality": 3,
    "Local Administrative Area": 3,
    "City": 3,
    "Town": 3,
    "Region": 4,
    "Zone": 4,
    "Drainage": 4,
    "Land Feature": 4,
    "Island": 4,
    "Nationality": 4,
    "OpenSpace": 4,
    "Aggregate": 4,
    "Colloquial": 4,
    "Supername": 4,
    "Undefined": 4,
}

UNMAPPED_TYPE_PRIORITY = 5
NULL_TYPE_PRIORITY = 6


def location_priority(location_type: str | None) -> int:
    """Get the sort tier of an administrative type (lower is shown first)."""
    if not location_type:
        return NULL_TYPE_PRIORITY
    return LOCATION_TYPE_PRIORITY.get(location_type, UNMAPPED_TYPE_PRIORITY)


def match_quality(query: str, name: str) -> int:
    """0 for a prefix match, 1 for a substring match, 2 for no match."""
    q = query.lower()
    n = name.lower()
    if n.startswith(q):
        return 0
    if q in n:
        return 1
    return 2


def search(
    query: str,
    items: Iterable[T],
    priority: Callable[[T], int] | None = None,
    *,
    name: Callable[[T], str] = str,
    limit: int | None = None,
) -> list[T]:
    """Filter and rank items by a typed query.

    Args:
        query: Text typed so far. Blank matches everything.
        items: Candidates to search.
        priority: Maps an item to its tier (lower first). Defaults to 0.
        name: Maps an item to its display name.
        limit: Maximum number of results.

    Returns:
        Matching items, best first.
    """
    q = query.strip().lower()

    candidates = [item for item in items if q in name(item).lower()]

    def sort_key(item: T) -> tuple:
        item_name = name(item)
        tier = priority(item) if priority else 0
        return (tier, match_quality(q, item_name), item_name.lower(), item_name)

    ranked = sorted(candidates, key=sort_key)
    if limit is not None:
        return ranked[:limit]
    return ranked
