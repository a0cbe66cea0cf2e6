"""Tests for vote aggregation."""

import pytest

from signal_core.aggregator import round_half_up, tally_votes
from signal_core.models import CombinedLabel, Direction, IndicatorSignal, Strength
from signal_core.models.config import VotingConfig


def make_votes(rise: int = 0, fall: int = 0, neutral: int = 0) -> list[IndicatorSignal]:
    """Helper to create a list of votes with the given direction counts."""
    votes = []
    for direction, count in (
        (Direction.RISE, rise),
        (Direction.FALL, fall),
        (Direction.NEUTRAL, neutral),
    ):
        votes.extend(
            IndicatorSignal(name=f"{direction.value}-{i}", direction=direction, confidence=70)
            for i in range(count)
        )
    return votes


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(12.5, 13), (14.5, 15), (14.4999, 14), (0.0, 0), (100.0, 100), (71.42857, 71)],
    )
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestTallyVotes:
    @pytest.mark.parametrize(
        "rise,fall,neutral,label,strength",
        [
            (5, 0, 2, CombinedLabel.STRONG_RISE, Strength.STRONG),
            (6, 1, 0, CombinedLabel.STRONG_RISE, Strength.STRONG),
            (4, 1, 2, CombinedLabel.RISE, Strength.MODERATE),
            (4, 3, 0, CombinedLabel.RISE, Strength.MODERATE),
            (3, 1, 3, CombinedLabel.WEAK_RISE, Strength.WEAK),
            (3, 0, 4, CombinedLabel.WEAK_RISE, Strength.WEAK),
            (0, 5, 2, CombinedLabel.STRONG_FALL, Strength.STRONG),
            (1, 4, 2, CombinedLabel.FALL, Strength.MODERATE),
            (1, 3, 3, CombinedLabel.WEAK_FALL, Strength.WEAK),
        ],
    )
    def test_labels(self, rise, fall, neutral, label, strength):
        tally = tally_votes(make_votes(rise, fall, neutral))

        assert tally.combined_label is label
        assert tally.strength is strength

    def test_three_with_two_opposing_is_neutral(self):
        tally = tally_votes(make_votes(rise=3, fall=2, neutral=2))

        assert tally.direction is Direction.NEUTRAL
        assert tally.combined_label is CombinedLabel.NEUTRAL
        assert tally.strength is Strength.NONE

    @pytest.mark.parametrize("rise,fall,neutral", [(3, 3, 1), (2, 2, 3), (0, 0, 7)])
    def test_ties_are_neutral(self, rise, fall, neutral):
        tally = tally_votes(make_votes(rise, fall, neutral))

        assert tally.direction is Direction.NEUTRAL
        assert tally.combined_label is CombinedLabel.NEUTRAL

    def test_two_votes_is_neutral(self):
        tally = tally_votes(make_votes(rise=2, neutral=5))

        assert tally.combined_label is CombinedLabel.NEUTRAL

    def test_counts_sum_to_total(self):
        tally = tally_votes(make_votes(rise=2, fall=3, neutral=2))

        assert tally.rise_count + tally.fall_count + tally.neutral_count == 7
        assert tally.total == 7

    def test_confidence_is_leading_share(self):
        tally = tally_votes(make_votes(rise=5, fall=0, neutral=2))

        assert tally.confidence == 71  # 5 / 7 = 71.43%
        assert tally.confidence_score == "5/7"

    def test_confidence_rounds_half_up(self):
        tally = tally_votes(make_votes(rise=1, neutral=7))

        assert tally.confidence == 13  # 12.5%

    def test_no_votes(self):
        tally = tally_votes([])

        assert tally.confidence == 0
        assert tally.confidence_score == "0/0"
        assert tally.direction is Direction.NEUTRAL

    def test_weights_ignored(self):
        votes = make_votes(rise=3, fall=1)
        votes[-1] = votes[-1].model_copy(update={"weight": 10.0})

        tally = tally_votes(votes)

        assert tally.combined_label is CombinedLabel.WEAK_RISE

    def test_custom_thresholds(self):
        voting = VotingConfig(strong_votes=6)

        tally = tally_votes(make_votes(rise=5, neutral=2), voting)

        assert tally.combined_label is CombinedLabel.RISE
