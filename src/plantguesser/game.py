"""Round lifecycle for the Plant Guesser game.

A round goes: draw an observation -> derive the base truth -> start the
order/family enrichment in the background -> collect a guess -> score and
reveal -> advance. The controller owns all of this state for one play
session (a game type plus an optional location).

Enrichment completes on an executor thread and may land at any point in the
round, or after it. Every round gets a new `round_version`; an enrichment
result carries the version it was started for and is dropped if the round
has since moved on.
"""

from __future__ import annotations

import functools
import logging
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import requests

from plantguesser.inaturalist import TAXON_GROUPS, ObservationFetchError
from plantguesser.sampling import BATCH_SIZE, SamplingBuffer, refill
from plantguesser.scoring import compute_score, score_percent
from plantguesser.truth import extract_truth

if TYPE_CHECKING:
    from collections.abc import Mapping
    from concurrent.futures import Executor, Future

    from plantguesser.inaturalist import Observation, TaxonDetails
    from plantguesser.sampling import ObservationSource
    from plantguesser.scoring import RoundScore
    from plantguesser.truth import Truth

logger = logging.getLogger(__name__)

GAME_TYPES = ("plants", "fungi", "both")
DEFAULT_GAME_TYPE = "both"

EMPTY_RESULTS_MESSAGE = "No observations found. Try another location."
LOAD_FAILED_MESSAGE = "Failed to load observation"


class GameStateError(RuntimeError):
    """Raised when the controller is asked to do something out of turn."""


def normalize_game_type(value: str | None) -> str:
    """Map any unrecognised game type to "both"."""
    return value if value in GAME_TYPES else DEFAULT_GAME_TYPE


def observation_to_dict(observation: Observation, *, reveal: bool = False) -> dict[str, Any]:
    """Serialize an observation for display.

    Names are withheld until the reveal so the payload doesn't give the
    answer away.
    """
    data: dict[str, Any] = {
        "id": observation.id,
        "photos": [
            {"id": p.id, "url": p.best_url(), "license_code": p.license_code}
            for p in observation.photos
        ],
    }
    if reveal:
        data["uri"] = observation.uri
        data["name"] = observation.display_name
    return data


class RoundController:
    """Drives rounds for one play session.

    Example:
        >>> controller = RoundController(INaturalistClient(), "fungi", "Oregon")
        >>> controller.start_round()
        >>> score = controller.submit_guess({"genus": "Amanita"})
        >>> controller.advance()
    """

    def __init__(
        self,
        source: ObservationSource,
        game_type: str = DEFAULT_GAME_TYPE,
        location: str | None = None,
        *,
        batch_size: int = BATCH_SIZE,
        executor: Executor | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.source = source
        self.game_type = normalize_game_type(game_type)
        self.location = location or None
        self.batch_size = batch_size
        self.rng = rng or random.Random()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="enrichment"
        )
        self._lock = threading.RLock()

        # One buffer per taxon group ("both" mode uses two)
        self._buffers: dict[str, SamplingBuffer] = {}

        self.round_version = 0
        self.loading = False

        # Current round
        self.observation: Observation | None = None
        self.truth: Truth | None = None
        self.guess: Mapping[str, str] | None = None
        self.score: RoundScore | None = None
        self.revealed = False
        self.error: str | None = None
        self.empty = False

        # Session totals
        self.total_earned = 0
        self.total_possible = 0
        self.rounds_played = 0

    @property
    def score_percent(self) -> int:
        return score_percent(self.total_earned, self.total_possible)

    def _reset_round(self) -> None:
        self.observation = None
        self.truth = None
        self.guess = None
        self.score = None
        self.revealed = False
        self.error = None
        self.empty = False

    def _pick_taxon_group(self) -> str:
        if self.game_type == "both":
            return self.rng.choice(sorted(TAXON_GROUPS))
        return self.game_type

    def _buffer_for(self, taxon_group: str) -> SamplingBuffer:
        if taxon_group not in self._buffers:
            self._buffers[taxon_group] = SamplingBuffer(rng=self.rng)
        return self._buffers[taxon_group]

    def buffered(self, taxon_group: str) -> int:
        """Number of observations waiting in a group's buffer."""
        buffer = self._buffers.get(taxon_group)
        return len(buffer) if buffer else 0

    def change_session(self, game_type: str | None, location: str | None) -> None:
        """Switch game type and/or location.

        Buffers and totals belong to a session, so both are discarded, and
        any fetch or enrichment still in flight is orphaned.
        """
        with self._lock:
            self.game_type = normalize_game_type(game_type)
            self.location = location or None
            self.round_version += 1
            self._buffers.clear()
            self._reset_round()
            self.loading = False
            self.total_earned = 0
            self.total_possible = 0
            self.rounds_played = 0
        logger.info("Session changed: game_type=%s location=%s", self.game_type, self.location)

    def start_round(self) -> Observation | None:
        """Load the next observation.

        Draws from the session buffer, refilling it from the source when it
        runs dry. Fetch failures and empty results end in the `error` state
        rather than raising.

        Returns:
            The new observation, or None if loading failed, found nothing,
            or another load was already in progress.
        """
        with self._lock:
            if self.loading:
                logger.debug("Round %d still loading; ignoring start", self.round_version)
                return None
            self.round_version += 1
            version = self.round_version
            self._reset_round()
            self.loading = True
            taxon_group = self._pick_taxon_group()
            buffer = self._buffer_for(taxon_group)
            observation = buffer.draw()

        if observation is None:
            try:
                batch = refill(self.source, taxon_group, self.batch_size, self.location)
            except (ObservationFetchError, requests.exceptions.RequestException) as e:
                logger.warning("Observation fetch failed (%s, %s): %s", taxon_group, self.location, e)
                self._fail_round(version, str(e) or LOAD_FAILED_MESSAGE)
                return None
            except Exception:
                logger.exception("Unexpected error loading observations (%s, %s)", taxon_group, self.location)
                self._fail_round(version, LOAD_FAILED_MESSAGE)
                return None

            with self._lock:
                if version != self.round_version:
                    logger.debug("Discarding batch for superseded round %d", version)
                    return None
                if not batch:
                    logger.info("No observations for %s at %s", taxon_group, self.location)
                    buffer.reset()
                    self.empty = True
                    self.error = EMPTY_RESULTS_MESSAGE
                    self.loading = False
                    return None
                buffer.extend(batch)
                observation = buffer.draw()

        with self._lock:
            if version != self.round_version:
                return None
            self.observation = observation
            self.truth = extract_truth(observation)
            self.loading = False

        if observation.taxon and observation.taxon.id:
            self._start_enrichment(version, observation.taxon.id)

        logger.debug("Round %d: observation %s (%s)", version, observation.id, taxon_group)
        return observation

    def _fail_round(self, version: int, message: str) -> None:
        with self._lock:
            if version == self.round_version:
                self.error = message
                self.loading = False

    def retry(self) -> Observation | None:
        """Start over after a fetch error or empty result."""
        return self.start_round()

    def advance(self) -> Observation | None:
        """Move on to the next observation."""
        return self.start_round()

    def _start_enrichment(self, version: int, taxon_id: int) -> None:
        future = self._executor.submit(self.source.fetch_taxon_details, taxon_id)
        future.add_done_callback(functools.partial(self._on_enrichment_done, version))

    def _on_enrichment_done(self, version: int, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Taxon enrichment failed for round %d: %s", version, exc)
            return
        self.apply_enrichment(version, future.result())

    def apply_enrichment(self, version: int, details: TaxonDetails) -> bool:
        """Merge order/family into the truth of the given round.

        Only unset ranks are filled. A result for any round other than the
        current one is ignored. A result that lands after submission still
        fills the truth shown in the reveal, but the stored score is not
        recomputed.

        Returns:
            True if any rank was filled.
        """
        with self._lock:
            if version != self.round_version or self.truth is None:
                logger.debug("Discarding enrichment for superseded round %d", version)
                return False
            filled = self.truth.merge_missing(details)
        if filled:
            logger.debug("Round %d enriched with %s", version, ", ".join(filled))
        return bool(filled)

    def submit_guess(self, guess: Mapping[str, str]) -> RoundScore:
        """Score the player's guess and reveal the answer.

        The guess is copied and frozen. Submitting again for the same round
        returns the first score without counting it twice.

        Raises:
            GameStateError: If no observation is loaded.
        """
        with self._lock:
            if self.observation is None or self.truth is None:
                raise GameStateError("No observation loaded")
            if self.revealed and self.score is not None:
                return self.score

            frozen = MappingProxyType({
                rank: str(text) for rank, text in guess.items() if text is not None
            })
            score = compute_score(self.truth, frozen)

            self.guess = frozen
            self.score = score
            self.revealed = True
            self.total_earned += score.earned
            self.total_possible += score.possible
            self.rounds_played += 1

        logger.debug("Round %d scored %d/%d", self.round_version, score.earned, score.possible)
        return score

    def snapshot(self) -> dict[str, Any]:
        """Get the observable state as JSON-safe data.

        The truth and observation names are only included after the reveal.
        """
        with self._lock:
            return {
                "round": self.round_version,
                "game_type": self.game_type,
                "location": self.location,
                "loading": self.loading,
                "error": self.error,
                "empty": self.empty,
                "revealed": self.revealed,
                "observation": (
                    observation_to_dict(self.observation, reveal=self.revealed)
                    if self.observation else None
                ),
                "truth": self.truth.as_dict() if self.revealed and self.truth else None,
                "guess": dict(self.guess) if self.guess is not None else None,
                "score": self.score.as_dict() if self.score else None,
                "total_earned": self.total_earned,
                "total_possible": self.total_possible,
                "score_percent": self.score_percent,
                "rounds_played": self.rounds_played,
            }

    def close(self) -> None:
        """Shut down the enrichment executor if this controller created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)
