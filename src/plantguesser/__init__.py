"""Plant Guesser - identify plants and fungi from iNaturalist observations."""

__version__ = "0.1.0"

# Observation source (iNaturalist API)
from plantguesser.inaturalist import (
    INaturalistClient,
    Observation,
    ObservationFetchError,
    Photo,
    Taxon,
    TaxonAncestor,
    TaxonDetails,
)

# Truth extraction and scoring
from plantguesser.truth import GUESS_RANKS, Truth, extract_truth, is_binomial
from plantguesser.scoring import (
    RANK_POINTS,
    RoundScore,
    ScoreDetail,
    compute_score,
    matches_option,
)

# Sampling and round lifecycle
from plantguesser.sampling import BATCH_SIZE, SamplingBuffer, refill
from plantguesser.game import (
    EMPTY_RESULTS_MESSAGE,
    GameStateError,
    RoundController,
    normalize_game_type,
)

# Reference data and suggestions
from plantguesser.reference import LocationEntry, ReferenceData
from plantguesser.suggestions import location_priority, search

from plantguesser.config import Settings

__all__ = [
    # iNaturalist
    "INaturalistClient",
    "Observation",
    "ObservationFetchError",
    "Photo",
    "Taxon",
    "TaxonAncestor",
    "TaxonDetails",
    # Truth and scoring
    "GUESS_RANKS",
    "RANK_POINTS",
    "RoundScore",
    "ScoreDetail",
    "Truth",
    "compute_score",
    "extract_truth",
    "is_binomial",
    "matches_option",
    # Game
    "BATCH_SIZE",
    "EMPTY_RESULTS_MESSAGE",
    "GameStateError",
    "RoundController",
    "SamplingBuffer",
    "normalize_game_type",
    "refill",
    # Reference data
    "LocationEntry",
    "ReferenceData",
    "location_priority",
    "search",
    # Config
    "Settings",
]
