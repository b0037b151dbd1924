"""Outcome resolution for a pair of submitted moves.

Pure and total over the 3x3 move space: no state is read or written.
"""

from enum import Enum

from app.schemas.game import Choice


class Outcome(str, Enum):
    DRAW = "draw"
    FIRST_WINS = "first_wins"
    SECOND_WINS = "second_wins"


# Each choice mapped to the choice it beats
BEATS: dict[Choice, Choice] = {
    Choice.ROCK: Choice.SCISSORS,
    Choice.SCISSORS: Choice.PAPER,
    Choice.PAPER: Choice.ROCK,
}


def resolve(first: Choice, second: Choice) -> Outcome:
    """Decide a round from the first and second player's choices.

    Args:
        first: The first player's choice.
        second: The second player's choice.

    Returns:
        DRAW on equal choices, FIRST_WINS when ``first`` beats ``second``,
        otherwise SECOND_WINS.
    """
    if first == second:
        return Outcome.DRAW
    if BEATS[first] == second:
        return Outcome.FIRST_WINS
    return Outcome.SECOND_WINS
