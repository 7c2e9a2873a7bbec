"""Ground-truth taxonomy for a game round.

The truth is built in two steps. `extract_truth` derives species and genus
synchronously from the observation record, falling back to the free-text
species guess when the community taxon is coarser than species. Order and
family arrive later from a taxon detail lookup and are folded in with
`Truth.merge_missing`, which only ever fills gaps.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plantguesser.inaturalist import Observation, TaxonDetails

# Ranks the player guesses, highest first
GUESS_RANKS = ["order", "family", "genus", "species"]

_ALPHA = re.compile(r"[a-zA-Z]")


def is_binomial(value: str | None) -> bool:
    """Check whether a name looks like a binomial (e.g. "Quercus alba").

    The first two whitespace-separated tokens must both contain a letter,
    which rejects single words and numeric placeholders.
    """
    if not value:
        return False
    parts = value.split()
    return len(parts) >= 2 and bool(_ALPHA.search(parts[0])) and bool(_ALPHA.search(parts[1]))


@dataclass
class Truth:
    """The correct answer for each guessable rank (None if unknown)."""

    order: str | None = None
    family: str | None = None
    genus: str | None = None
    species: str | None = None

    def __getitem__(self, rank: str) -> str | None:
        if rank not in GUESS_RANKS:
            raise KeyError(rank)
        return getattr(self, rank)

    def get(self, rank: str, default: str | None = None) -> str | None:
        """Get the value for a rank, or default if unset or unknown."""
        if rank not in GUESS_RANKS:
            return default
        value = getattr(self, rank)
        return default if value is None else value

    def known_ranks(self) -> list[str]:
        """Get the ranks that have a value, in GUESS_RANKS order."""
        return [rank for rank in GUESS_RANKS if getattr(self, rank)]

    def merge_missing(self, details: TaxonDetails) -> list[str]:
        """Fill ranks that are still unset from an enrichment result.

        Existing values are never overwritten, whichever path set them.

        Returns:
            The ranks that were filled.
        """
        filled = []
        for rank in ("order", "family"):
            value = getattr(details, rank)
            if value and not getattr(self, rank):
                setattr(self, rank, value)
                filled.append(rank)
        return filled

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


def extract_truth(observation: Observation) -> Truth:
    """Derive species and genus from an observation.

    Args:
        observation: The observation shown in this round.

    Returns:
        A Truth with species and/or genus set where they can be derived.
        Order and family are always left unset here.
    """
    taxon = observation.taxon
    scientific_name = taxon.name if taxon and taxon.name else None

    species = None
    if taxon and taxon.rank == "species" and scientific_name:
        species = scientific_name
    elif is_binomial(observation.species_guess):
        species = observation.species_guess.strip()

    genus = taxon.ancestor_name("genus") if taxon else None
    if not genus:
        # Scientific name first; the guess only matters if it's binomial
        source = scientific_name if scientific_name is not None else species
        if is_binomial(source):
            genus = source.split()[0]

    return Truth(species=species, genus=genus)
