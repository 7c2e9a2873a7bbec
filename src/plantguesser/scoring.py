"""Rank-weighted scoring of a player's guess.

Finer ranks are harder to get right and are worth more points:

- Order: 1 point
- Family: 2 points
- Genus: 3 points
- Species: 4 points

Only ranks with a known answer count. A round whose truth has just species
and genus is scored out of 7, not 10.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plantguesser.truth import Truth

RANK_POINTS: dict[str, int] = {
    "order": 1,
    "family": 2,
    "genus": 3,
    "species": 4,
}

# Display order of the reveal, finest rank first
SCORING_ORDER = ["species", "genus", "family", "order"]


def normalize_input(value: str | None) -> str:
    """Normalize a name for comparison (surrounding whitespace, case)."""
    return (value or "").strip().casefold()


def matches_option(user_input: str | None, option: str | None) -> bool:
    """Check whether typed text matches a name, ignoring case and padding."""
    return normalize_input(user_input) == normalize_input(option)


def score_percent(earned: int, possible: int) -> int:
    """Percentage of points earned, rounded half up (0 if nothing possible)."""
    if possible <= 0:
        return 0
    return math.floor(earned * 100 / possible + 0.5)


@dataclass(frozen=True)
class ScoreDetail:
    """The outcome for one rank."""

    rank: str
    correct: str
    guessed: str
    hit: bool
    points: int


@dataclass(frozen=True)
class RoundScore:
    """The outcome of one round."""

    earned: int = 0
    possible: int = 0
    details: tuple[ScoreDetail, ...] = field(default_factory=tuple)

    @property
    def percent(self) -> int:
        return score_percent(self.earned, self.possible)

    def as_dict(self) -> dict:
        return {
            "earned": self.earned,
            "possible": self.possible,
            "percent": self.percent,
            "details": [
                {
                    "rank": d.rank,
                    "correct": d.correct,
                    "guessed": d.guessed,
                    "hit": d.hit,
                    "points": d.points,
                }
                for d in self.details
            ],
        }


def compute_score(truth: Truth, guess: Mapping[str, str]) -> RoundScore:
    """Score a guess against the truth.

    Pure and idempotent: the same truth and guess always give an equal
    RoundScore, and neither argument is modified.

    Args:
        truth: The resolved truth at submission time.
        guess: Rank name to typed text. Missing ranks count as empty.

    Returns:
        RoundScore with one detail per rank that has a known answer.
    """
    earned = 0
    possible = 0
    details = []

    for rank in SCORING_ORDER:
        correct = truth.get(rank)
        if not correct:
            continue

        points = RANK_POINTS[rank]
        possible += points

        guessed = guess.get(rank) or ""
        hit = matches_option(guessed, correct)
        if hit:
            earned += points

        details.append(ScoreDetail(
            rank=rank,
            correct=correct,
            guessed=guessed,
            hit=hit,
            points=points,
        ))

    return RoundScore(earned=earned, possible=possible, details=tuple(details))
