"""Prefetched observation pool for a play session.

A single random-ordered API call returns a page of observations. Serving
rounds from that page, rather than calling the API once per round, keeps
network traffic down and avoids the near-term repeats that independent
random calls produce.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plantguesser.inaturalist import Observation, TaxonDetails

logger = logging.getLogger(__name__)

BATCH_SIZE = 30


class ObservationSource(Protocol):
    """What the game needs from a remote observation database."""

    def fetch_observations(
        self, taxon_group: str, count: int, location: str | None = None
    ) -> list[Observation]: ...

    def fetch_taxon_details(self, taxon_id: int) -> TaxonDetails: ...


class SamplingBuffer:
    """Observations not yet shown in the current session.

    Example:
        >>> buffer = SamplingBuffer()
        >>> buffer.extend(refill(client, "plants"))
        >>> obs = buffer.draw()
    """

    def __init__(
        self,
        observations: Iterable[Observation] = (),
        rng: random.Random | None = None,
    ) -> None:
        self._items: list[Observation] = list(observations)
        self.rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._items)

    def draw(self) -> Observation | None:
        """Remove and return a uniformly random observation, or None if empty."""
        if not self._items:
            return None
        idx = self.rng.randrange(len(self._items))
        return self._items.pop(idx)

    def extend(self, observations: Iterable[Observation]) -> None:
        """Add a freshly fetched batch to the pool."""
        self._items.extend(observations)

    def reset(self) -> None:
        """Discard every pending observation."""
        self._items.clear()


def refill(
    source: ObservationSource,
    taxon_group: str,
    batch_size: int = BATCH_SIZE,
    location: str | None = None,
) -> list[Observation]:
    """Fetch a new batch for the buffer.

    Fetch errors propagate unchanged; there is no retry here. An empty list
    means the source has nothing for this group and location.
    """
    batch = source.fetch_observations(taxon_group, batch_size, location)
    usable = [obs for obs in batch if obs.photos]
    if len(usable) < len(batch):
        logger.debug("Dropped %d observations without photos", len(batch) - len(usable))
    return usable
