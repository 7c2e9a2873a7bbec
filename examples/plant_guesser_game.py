#!/usr/bin/env python3
"""Plant Guesser - identify plants and fungi from iNaturalist photos.

Open the photo links, then guess the order, family, genus and species.
Finer ranks are worth more points (order 1, family 2, genus 3, species 4).

Usage:
    python examples/plant_guesser_game.py [--game plants|fungi|both] [--location NAME]

Controls:
    ?text       Show suggestions for the current field
    Q           Quit game (uppercase)
"""

import argparse
import logging

from plantguesser.config import Settings
from plantguesser.game import RoundController
from plantguesser.inaturalist import INaturalistClient
from plantguesser.reference import ReferenceData
from plantguesser.ui import (
    WIDTH,
    ask,
    display_observation,
    display_reveal,
    format_totals,
    prompt_guess,
    prompt_location,
)

GAME_LABELS = {
    "plants": "plant",
    "fungi": "fungus",
    "both": "organism",
}


def run(controller: RoundController, reference: ReferenceData | None) -> None:
    """Run the game loop."""
    controller.start_round()

    while True:
        if controller.error:
            print(f"\n  {controller.error}")
            again = ask("  Try again? (y/n): ")
            if (again or "").lower() != "y":
                return
            controller.retry()
            continue

        observation = controller.observation
        if observation is None:
            return

        totals = format_totals(
            controller.total_earned, controller.total_possible, controller.score_percent
        )
        display_observation(
            observation, GAME_LABELS[controller.game_type], controller.location, totals
        )

        print("\n  Your guess:")
        guess = prompt_guess(reference)
        if guess is None:
            print(f"\n  Game ended. Final score: {totals}")
            return

        score = controller.submit_guess(guess)
        display_reveal(score, controller.truth, observation)

        again = ask("  Press Enter for the next organism (Q to quit)... ")
        if again is None or again == "Q":
            totals = format_totals(
                controller.total_earned, controller.total_possible, controller.score_percent
            )
            print(f"\n  Final score: {totals}")
            return

        controller.advance()


def main():
    parser = argparse.ArgumentParser(description="Plant Guesser terminal game")
    parser.add_argument("--game", choices=sorted(GAME_LABELS), default="both")
    parser.add_argument("--location", default=None, help="Place name to filter by")
    args = parser.parse_args()

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    print("\n" + "=" * WIDTH)
    print("  PLANT GUESSER - Loading...")
    print("=" * WIDTH)

    reference = None
    if settings.data_dir.exists():
        reference = ReferenceData.from_directory(settings.data_dir)
    else:
        print(f"\n  Reference data not found at {settings.data_dir}; suggestions disabled.")

    location = args.location
    if location is None and reference is not None:
        location = prompt_location(reference)

    client = INaturalistClient(api_base=settings.api_base, timeout=settings.request_timeout)
    controller = RoundController(
        client, args.game, location, batch_size=settings.batch_size
    )
    try:
        run(controller, reference)
    finally:
        controller.close()

    print("\n  Thanks for playing Plant Guesser!\n")


if __name__ == "__main__":
    main()
