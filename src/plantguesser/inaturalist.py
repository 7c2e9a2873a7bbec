"""iNaturalist observation source.

This module provides the typed observation records used by the game and a
small client for the two iNaturalist v1 endpoints the game consumes:

- /observations: random batches of verifiable, research-grade observations
  for one iconic taxon, optionally filtered by place
- /taxa/<id>: the ancestor chain of a taxon, used to enrich the truth with
  order and family

Reference: https://api.inaturalist.org/v1/docs/
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

import requests

from plantguesser.config import DEFAULT_API_BASE, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

# Iconic taxon ids of the two playable groups
TAXON_GROUPS: dict[str, int] = {
    "plants": 47126,  # Plantae
    "fungi": 47170,  # Fungi
}

# Lean field projection, ancestors included for scoring
OBSERVATION_FIELDS = (
    "id,uri,species_guess,"
    "photos{id,url,original_url,license_code},"
    "taxon{id,name,preferred_common_name,rank,"
    "ancestors{id,name,preferred_common_name,rank}}"
)

MAX_PER_PAGE = 200
MAX_RANDOM_PAGE = 100
PHOTO_SIZES = ("square", "small", "medium", "large")

USER_AGENT = "PlantGuesser/0.1 (taxonomy guessing game; educational project)"


class ObservationFetchError(Exception):
    """Raised when the observations endpoint returns a non-success status."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"iNaturalist API error {status}: {body}")


@dataclass(frozen=True)
class Photo:
    """One observation photo."""

    id: int
    url: str = ""
    original_url: str | None = None
    license_code: str | None = None

    def best_url(self) -> str:
        """Get the highest resolution URL available for this photo."""
        if self.original_url:
            return self.original_url
        if not self.url:
            return ""
        url = self.url
        for size in PHOTO_SIZES:
            url = url.replace(f"/{size}.", "/original.")
        return url


@dataclass(frozen=True)
class TaxonAncestor:
    """An ancestor entry in a taxon's lineage."""

    id: int
    name: str
    rank: str
    preferred_common_name: str | None = None


@dataclass(frozen=True)
class Taxon:
    """The community-resolved taxon of an observation."""

    id: int
    name: str
    rank: str
    preferred_common_name: str | None = None
    ancestors: tuple[TaxonAncestor, ...] = field(default_factory=tuple)

    def ancestor_name(self, rank: str) -> str | None:
        """Get the name of the first ancestor at the given rank."""
        for ancestor in self.ancestors:
            if ancestor.rank == rank:
                return ancestor.name
        return None


@dataclass(frozen=True)
class Observation:
    """A single iNaturalist observation with at least one photo."""

    id: int
    uri: str = ""
    species_guess: str | None = None
    photos: tuple[Photo, ...] = field(default_factory=tuple)
    taxon: Taxon | None = None

    @property
    def display_name(self) -> str:
        """Common name if known, else scientific name, else the free-text guess."""
        if self.taxon and self.taxon.preferred_common_name:
            return self.taxon.preferred_common_name
        if self.taxon and self.taxon.name:
            return self.taxon.name
        return self.species_guess or "Unknown"

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> Observation:
        """Build an observation from one raw API result."""
        photos = tuple(
            Photo(
                id=p["id"],
                url=p.get("url") or "",
                original_url=p.get("original_url"),
                license_code=p.get("license_code"),
            )
            for p in record.get("photos") or []
        )

        taxon = None
        raw_taxon = record.get("taxon")
        if raw_taxon:
            taxon = Taxon(
                id=raw_taxon["id"],
                name=raw_taxon.get("name") or "",
                rank=raw_taxon.get("rank") or "",
                preferred_common_name=raw_taxon.get("preferred_common_name"),
                ancestors=tuple(
                    TaxonAncestor(
                        id=a.get("id", 0),
                        name=a.get("name") or "",
                        rank=a.get("rank") or "",
                        preferred_common_name=a.get("preferred_common_name"),
                    )
                    for a in raw_taxon.get("ancestors") or []
                ),
            )

        return cls(
            id=record["id"],
            uri=record.get("uri") or "",
            species_guess=record.get("species_guess"),
            photos=photos,
            taxon=taxon,
        )


@dataclass(frozen=True)
class TaxonDetails:
    """Order and family resolved from a taxon's ancestor chain."""

    order: str | None = None
    family: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.order is None and self.family is None


class INaturalistClient:
    """Client for the iNaturalist observation and taxon endpoints.

    Example:
        >>> client = INaturalistClient()
        >>> batch = client.fetch_observations("fungi", 30, location="Oregon")
        >>> details = client.fetch_taxon_details(batch[0].taxon.id)
    """

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        rng: random.Random | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.rng = rng or random.Random()
        self.headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def build_observation_params(
        self,
        taxon_group: str,
        count: int,
        location: str | None = None,
    ) -> dict[str, str]:
        """Build the query string for a random batch of observations."""
        if taxon_group not in TAXON_GROUPS:
            raise ValueError(f"Unknown taxon group: {taxon_group!r}")

        params = {
            "iconic_taxa": str(TAXON_GROUPS[taxon_group]),
            "verifiable": "true",
            "hrank": "species",
            "quality_grade": "research",
            "photos": "true",
            "order_by": "random",
            "fields": OBSERVATION_FIELDS,
            "per_page": str(min(max(count, 1), MAX_PER_PAGE)),
            # order_by=random alone still favours recent uploads
            "page": str(self.rng.randint(1, MAX_RANDOM_PAGE)),
        }
        if location:
            params["place"] = location
        return params

    def fetch_observations(
        self,
        taxon_group: str,
        count: int,
        location: str | None = None,
    ) -> list[Observation]:
        """Fetch a random batch of photographed observations.

        Args:
            taxon_group: "plants" or "fungi".
            count: Desired batch size (clamped to 1..200).
            location: Optional free-text place name.

        Returns:
            Observations in API order, each with at least one photo.

        Raises:
            ObservationFetchError: On a non-success HTTP status or a body
                that isn't an observation result page.
            requests.exceptions.RequestException: On network failure.
        """
        params = self.build_observation_params(taxon_group, count, location)
        response = requests.get(
            f"{self.api_base}/observations",
            params=params,
            headers=self.headers,
            timeout=self.timeout,
        )
        if not response.ok:
            raise ObservationFetchError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise ObservationFetchError(response.status_code, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ObservationFetchError(
                response.status_code, f"unexpected payload: {type(data).__name__}"
            )

        results = data.get("results") or []
        if not isinstance(results, list):
            raise ObservationFetchError(
                response.status_code, f"unexpected results: {type(results).__name__}"
            )

        observations = []
        for record in results:
            if not isinstance(record, dict) or not record.get("photos"):
                continue
            try:
                observations.append(Observation.from_api(record))
            except (KeyError, TypeError, AttributeError) as e:
                logger.debug("Skipping malformed observation %r: %s", record.get("id"), e)

        logger.debug(
            "Fetched %d observations (group=%s, location=%s)",
            len(observations), taxon_group, location,
        )
        return observations

    def fetch_taxon_details(self, taxon_id: int) -> TaxonDetails:
        """Look up order and family for a taxon.

        Enrichment is best-effort: every failure is logged and an empty
        result is returned instead of raising.
        """
        try:
            response = requests.get(
                f"{self.api_base}/taxa/{taxon_id}",
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning("Failed to fetch taxon %s: %s", taxon_id, e)
            return TaxonDetails()
        except ValueError as e:
            logger.warning("Invalid taxon response for %s: %s", taxon_id, e)
            return TaxonDetails()

        results = data.get("results") or []
        ancestors = (results[0].get("ancestors") if results else None) or []

        def first(rank: str) -> str | None:
            for ancestor in ancestors:
                if ancestor.get("rank") == rank and ancestor.get("name"):
                    return ancestor["name"]
            return None

        return TaxonDetails(order=first("order"), family=first("family"))
