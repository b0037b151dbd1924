"""Tests for the rock-paper-scissors outcome resolver."""

import pytest

from app.schemas.game import Choice
from app.services.game.resolver import BEATS, Outcome, resolve


class TestResolve:
    """The resolver must follow the classic rules for every pair of moves."""

    @pytest.mark.parametrize(
        ("first", "second", "expected"),
        [
            (Choice.ROCK, Choice.ROCK, Outcome.DRAW),
            (Choice.ROCK, Choice.PAPER, Outcome.SECOND_WINS),
            (Choice.ROCK, Choice.SCISSORS, Outcome.FIRST_WINS),
            (Choice.PAPER, Choice.ROCK, Outcome.FIRST_WINS),
            (Choice.PAPER, Choice.PAPER, Outcome.DRAW),
            (Choice.PAPER, Choice.SCISSORS, Outcome.SECOND_WINS),
            (Choice.SCISSORS, Choice.ROCK, Outcome.SECOND_WINS),
            (Choice.SCISSORS, Choice.PAPER, Outcome.FIRST_WINS),
            (Choice.SCISSORS, Choice.SCISSORS, Outcome.DRAW),
        ],
    )
    def test_all_pairs(self, first: Choice, second: Choice, expected: Outcome) -> None:
        """Every one of the nine pairs resolves to the expected outcome."""
        assert resolve(first, second) == expected

    def test_swapping_players_mirrors_the_outcome(self) -> None:
        """A win for the first player becomes a win for the second when swapped."""
        mirror = {
            Outcome.DRAW: Outcome.DRAW,
            Outcome.FIRST_WINS: Outcome.SECOND_WINS,
            Outcome.SECOND_WINS: Outcome.FIRST_WINS,
        }
        for first in Choice:
            for second in Choice:
                assert resolve(second, first) == mirror[resolve(first, second)]

    def test_accepts_raw_string_values(self) -> None:
        """Choice is a str enum, so wire values compare equal to members."""
        assert resolve(Choice("rock"), Choice("scissors")) == Outcome.FIRST_WINS


class TestBeatsTable:
    """Tests for the BEATS mapping."""

    def test_each_choice_beats_exactly_one_other(self) -> None:
        """The table is a cycle covering all three choices."""
        assert set(BEATS.keys()) == set(Choice)
        assert set(BEATS.values()) == set(Choice)
        for choice, beaten in BEATS.items():
            assert choice != beaten
