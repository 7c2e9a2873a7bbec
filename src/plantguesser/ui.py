"""Terminal UI components for Plant Guesser.

Display helpers and the guess prompt used by the terminal game in
examples/plant_guesser_game.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from plantguesser.truth import GUESS_RANKS

if TYPE_CHECKING:
    from plantguesser.inaturalist import Observation
    from plantguesser.reference import ReferenceData
    from plantguesser.scoring import RoundScore
    from plantguesser.truth import Truth

WIDTH = 100


def clear_screen() -> None:
    """Clear the terminal screen."""
    print("\033[2J\033[H", end="")


def format_rank(rank: str) -> str:
    """Format a rank name for display."""
    return rank.capitalize() if rank else "Unknown"


def format_totals(earned: int, possible: int, percent: int) -> str:
    """Format the running score, e.g. "12/20 (60%)"."""
    return f"{earned}/{possible} ({percent}%)"


def wrap_text(text: str, width: int = 76, indent: str = "  ") -> str:
    """Word wrap text with optional indent."""
    words = text.split()
    lines = []
    current_line = []
    current_length = 0

    for word in words:
        if current_line and current_length + len(word) + 1 > width:
            lines.append(indent + " ".join(current_line))
            current_line = [word]
            current_length = len(word)
        else:
            current_line.append(word)
            current_length += len(word) + 1

    if current_line:
        lines.append(indent + " ".join(current_line))

    return "\n".join(lines)


def display_observation(
    observation: Observation,
    game_label: str,
    location: str | None,
    totals: str,
) -> None:
    """Show the photos of the mystery observation."""
    clear_screen()
    print("=" * WIDTH)
    print(f"  PLANT GUESSER - Identify the {game_label}")
    print("=" * WIDTH)
    print(f"\n  Location: {location or 'Anywhere'} | Score: {totals}")
    print("\n" + "-" * WIDTH)
    print(f"  PHOTOS ({len(observation.photos)}):")
    print("-" * WIDTH)
    for i, photo in enumerate(observation.photos, 1):
        print(f"  [{i}] {photo.best_url()}")
    print("-" * WIDTH)
    print("  Photos: iNaturalist. Available from https://www.inaturalist.org")
    print("  Type '?' plus text for suggestions (e.g. ?rosa), or Q to quit.")


def display_reveal(score: RoundScore, truth: Truth, observation: Observation) -> None:
    """Show the answer for each rank and the points earned."""
    print("\n" + "-" * WIDTH)
    print("  ANSWER")
    print("-" * WIDTH)
    for detail in score.details:
        mark = f"+{detail.points}" if detail.hit else "0"
        guessed = detail.guessed or "-"
        print(f"  {format_rank(detail.rank):<8} {detail.correct:<32} (you: {guessed:<24}) {mark:>4}")

    # Ranks the enrichment filled in after scoring are shown but not scored
    scored = {d.rank for d in score.details}
    for rank in truth.known_ranks():
        if rank not in scored:
            print(f"  {format_rank(rank):<8} {truth[rank]:<32} (not scored)")

    print(f"\n  This was: {observation.display_name}")
    if observation.uri:
        print(f"  {observation.uri}")
    print(f"  Round: {score.earned}/{score.possible} points")
    print("-" * WIDTH)


def ask(prompt: str, input_fn: Callable[[str], str] = input) -> str | None:
    """Read one stripped line, or None if input is closed or interrupted."""
    try:
        return input_fn(prompt).strip()
    except (KeyboardInterrupt, EOFError):
        return None


def prompt_location(
    reference: ReferenceData,
    input_fn: Callable[[str], str] = input,
    limit: int = 10,
) -> str | None:
    """Let the player search for a location.

    Returns the chosen place name, or None for anywhere (blank search,
    EOF or Ctrl-C).
    """
    while True:
        query = ask("  Location search (blank = anywhere): ", input_fn)
        if not query:
            return None

        matches = reference.search_locations(query)[:limit]
        if not matches:
            print("  No matching locations.")
            continue

        for i, loc in enumerate(matches, 1):
            print(f"  ({i}) {loc.name:<40} {loc.type or 'Unknown'}")
        choice = ask("  Pick a number (blank to search again): ", input_fn)
        if choice is None:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(matches):
            return matches[int(choice) - 1].name


def prompt_guess(
    reference: ReferenceData | None = None,
    input_fn: Callable[[str], str] = input,
) -> dict[str, str] | None:
    """Ask for a name at each rank.

    An entry starting with '?' lists suggestions for that rank and asks
    again. Returns None if the player quits.
    """
    guess: dict[str, str] = {}
    for rank in GUESS_RANKS:
        while True:
            text = ask(f"  {format_rank(rank):<8}> ", input_fn)
            if text is None or text == "Q":
                return None

            if text.startswith("?"):
                if reference is None:
                    print("    (no suggestions available)")
                    continue
                options = reference.options_for_rank(rank, text[1:])
                if options:
                    print(wrap_text(", ".join(options), width=WIDTH - 8, indent="    "))
                else:
                    print("    (no suggestions)")
                continue

            guess[rank] = text
            break
    return guess
