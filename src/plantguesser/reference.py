"""Static reference tables for autocomplete and taxonomy lookups.

The data directory holds prebuilt JSON tables:

- locations.json: {place name: administrative type or null}
- orders.json, families.json, genera.json: lists of valid names
- genus_taxonomy.json: {genus: {"order": ..., "family": ...}}

Tables are loaded once at startup and never modified.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from plantguesser.inaturalist import TaxonDetails
from plantguesser.suggestions import (
    LOCATION_LIMIT,
    RANK_OPTION_LIMIT,
    location_priority,
    search,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationEntry:
    """A searchable place name."""

    name: str
    type: str | None = None


def _load_json(path: Path, default: Any) -> Any:
    if not path.exists():
        logger.warning("Reference table not found: %s", path)
        return default
    with open(path, encoding="utf-8") as f:
        return json.load(f)


@dataclass
class ReferenceData:
    """Read-only name lists and the genus to (order, family) lookup.

    Example:
        >>> ref = ReferenceData.from_directory("data")
        >>> [loc.name for loc in ref.search_locations("ore")]
        ['Oregon', ...]
        >>> ref.taxonomy_for_genus("Quercus")
        TaxonDetails(order='Fagales', family='Fagaceae')
    """

    locations: list[LocationEntry] = field(default_factory=list)
    orders: list[str] = field(default_factory=list)
    families: list[str] = field(default_factory=list)
    genera: list[str] = field(default_factory=list)
    genus_taxonomy: dict[str, dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_directory(cls, data_dir: str | Path) -> ReferenceData:
        """Load every table from a data directory.

        Missing tables load as empty; a missing directory is an error.
        """
        path = Path(data_dir)
        if not path.is_dir():
            raise FileNotFoundError(f"Reference data directory not found: {path}")

        raw_locations: dict[str, str | None] = _load_json(path / "locations.json", {})
        ref = cls(
            locations=[LocationEntry(name, type_) for name, type_ in raw_locations.items()],
            orders=list(_load_json(path / "orders.json", [])),
            families=list(_load_json(path / "families.json", [])),
            genera=list(_load_json(path / "genera.json", [])),
            genus_taxonomy=dict(_load_json(path / "genus_taxonomy.json", {})),
        )
        logger.info(
            "Loaded reference data: %d locations, %d orders, %d families, %d genera",
            len(ref.locations), len(ref.orders), len(ref.families), len(ref.genera),
        )
        return ref

    def search_locations(self, query: str = "") -> list[LocationEntry]:
        """Rank places for a query, broad administrative types first."""
        return search(
            query,
            self.locations,
            lambda loc: location_priority(loc.type),
            name=lambda loc: loc.name,
            limit=LOCATION_LIMIT,
        )

    def options_for_rank(self, rank: str, query: str = "") -> list[str]:
        """Suggest names for one guess field.

        Species is free-form (any binomial), so it has no suggestions.
        """
        names_by_rank = {
            "order": self.orders,
            "family": self.families,
            "genus": self.genera,
            "species": [],
        }
        if rank not in names_by_rank:
            raise ValueError(f"Unknown rank: {rank!r}")
        return search(query, names_by_rank[rank], limit=RANK_OPTION_LIMIT)

    def taxonomy_for_genus(self, genus: str | None) -> TaxonDetails:
        """Look up order and family for a genus (or the genus of a binomial)."""
        if not genus or not genus.strip():
            return TaxonDetails()
        entry = self.genus_taxonomy.get(genus.split()[0])
        if not entry:
            return TaxonDetails()
        return TaxonDetails(order=entry.get("order"), family=entry.get("family"))
