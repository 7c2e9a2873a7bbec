"""Plant Guesser Web - JSON API for the guessing game.

Run with:
    plantguesser-web

Then call http://localhost:8080/api/start to begin a game.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor

from flask import Flask, jsonify, request, session

from plantguesser.config import Settings
from plantguesser.game import GameStateError, RoundController, normalize_game_type
from plantguesser.inaturalist import INaturalistClient
from plantguesser.reference import ReferenceData
from plantguesser.sampling import ObservationSource

logger = logging.getLogger(__name__)

settings = Settings.from_env()

app = Flask(__name__)
app.secret_key = settings.secret_key
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["SESSION_COOKIE_SECURE"] = settings.cookie_secure

# Global data (loaded once at startup)
reference: ReferenceData | None = None
source: ObservationSource | None = None

# Shared by every game's taxon enrichment
enrichment_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="enrichment")

# Server-side game state, keyed by the id stored in the session cookie.
# Least recently used first; capped at settings.max_games.
# Fine for a single server process; use a shared store when scaling out.
games: OrderedDict[str, RoundController] = OrderedDict()
games_lock = threading.Lock()


def get_game() -> RoundController | None:
    """Get the controller for the current session, if any."""
    game_id = session.get("game_id")
    if not game_id:
        return None
    with games_lock:
        controller = games.get(game_id)
        if controller is not None:
            games.move_to_end(game_id)
        return controller


def store_game(game_id: str, controller: RoundController) -> None:
    """Register a new game, evicting the least recently used ones over the cap."""
    evicted = []
    with games_lock:
        games[game_id] = controller
        games.move_to_end(game_id)
        while len(games) > settings.max_games:
            evicted.append(games.popitem(last=False))
    for old_id, old in evicted:
        logger.info("Evicting idle game %s", old_id)
        old.close()


def drop_game(game_id: str | None) -> None:
    """Remove a game and release its resources."""
    if not game_id:
        return
    with games_lock:
        controller = games.pop(game_id, None)
    if controller is not None:
        controller.close()


def data_unavailable():
    return jsonify({"error": "Game data not loaded"}), 503


@app.route("/health")
def health():
    """Health check endpoint for debugging."""
    return jsonify({
        "status": "ok",
        "reference_loaded": reference is not None,
        "source_ready": source is not None,
        "active_games": len(games),
    })


@app.route("/api/locations")
def locations():
    """Location autocomplete."""
    if reference is None:
        return data_unavailable()
    query = request.args.get("q", "")
    return jsonify([
        {"name": loc.name, "type": loc.type}
        for loc in reference.search_locations(query)
    ])


@app.route("/api/suggest/<rank>")
def suggest(rank: str):
    """Name suggestions for one guess field."""
    if reference is None:
        return data_unavailable()
    try:
        options = reference.options_for_rank(rank, request.args.get("q", ""))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(options)


@app.route("/api/taxonomy/<genus>")
def genus_taxonomy(genus: str):
    """Order and family of a genus, for pre-filling the coarser fields."""
    if reference is None:
        return data_unavailable()
    details = reference.taxonomy_for_genus(genus)
    return jsonify({"order": details.order, "family": details.family})


@app.route("/api/start", methods=["POST"])
def start_game():
    """Start a new game session and load its first round."""
    if source is None:
        return data_unavailable()

    data = request.get_json(silent=True) or {}
    game_type = normalize_game_type(data.get("game_type"))
    location = (data.get("location") or "").strip() or None

    # Drop the previous game for this browser session
    drop_game(session.get("game_id"))

    controller = RoundController(
        source,
        game_type,
        location,
        batch_size=settings.batch_size,
        executor=enrichment_executor,
    )
    game_id = str(uuid.uuid4())
    store_game(game_id, controller)
    session["game_id"] = game_id

    controller.start_round()
    logger.info("Started game %s (%s, %s)", game_id, game_type, location)
    return jsonify(controller.snapshot())


@app.route("/api/guess", methods=["POST"])
def make_guess():
    """Submit a guess for the current round."""
    controller = get_game()
    if controller is None:
        return jsonify({"error": "No active game"}), 400

    data = request.get_json(silent=True) or {}
    guess = data.get("guess") or {}
    if not isinstance(guess, dict):
        return jsonify({"error": "guess must be an object of rank to name"}), 400

    try:
        controller.submit_guess(guess)
    except GameStateError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(controller.snapshot())


@app.route("/api/next", methods=["POST"])
def next_round():
    """Advance to the next observation (also retries after an error)."""
    controller = get_game()
    if controller is None:
        return jsonify({"error": "No active game"}), 400
    controller.advance()
    return jsonify(controller.snapshot())


@app.route("/api/state")
def current_state():
    """Current round and session totals."""
    controller = get_game()
    if controller is None:
        return jsonify({"error": "No active game"}), 400
    return jsonify(controller.snapshot())


def load_data(config: Settings = settings) -> None:
    """Load reference data and create the iNaturalist client at startup."""
    global reference, source

    print("Loading reference data...")
    reference = ReferenceData.from_directory(config.data_dir)

    print("Connecting observation source...")
    source = INaturalistClient(api_base=config.api_base, timeout=config.request_timeout)

    print("Data loaded!")


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n" + "=" * 50)
    print("Starting Plant Guesser Web Server...")
    print("=" * 50 + "\n")

    load_data()

    print("\n" + "=" * 50)
    print("Server ready!")
    print("Visit: http://127.0.0.1:8080")
    print("Health check: http://127.0.0.1:8080/health")
    print("=" * 50 + "\n")

    app.run(debug=False, port=8080, host="127.0.0.1")


if __name__ == "__main__":
    main()
