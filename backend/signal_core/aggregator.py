"""Vote aggregation into a composite label."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from signal_core.models.config import VotingConfig
from signal_core.models.signal import CombinedLabel, Direction, IndicatorSignal, Strength

_LABELS = {
    (Direction.RISE, Strength.STRONG): CombinedLabel.STRONG_RISE,
    (Direction.RISE, Strength.MODERATE): CombinedLabel.RISE,
    (Direction.RISE, Strength.WEAK): CombinedLabel.WEAK_RISE,
    (Direction.FALL, Strength.STRONG): CombinedLabel.STRONG_FALL,
    (Direction.FALL, Strength.MODERATE): CombinedLabel.FALL,
    (Direction.FALL, Strength.WEAK): CombinedLabel.WEAK_FALL,
}


@dataclass(frozen=True)
class VoteTally:
    rise_count: int
    fall_count: int
    neutral_count: int
    direction: Direction
    strength: Strength
    combined_label: CombinedLabel
    confidence: int
    confidence_score: str

    @property
    def total(self) -> int:
        return self.rise_count + self.fall_count + self.neutral_count


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python's round() goes to even)."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _strength(leading: int, opposing: int, voting: VotingConfig) -> Strength:
    if leading >= voting.strong_votes:
        return Strength.STRONG
    if leading >= voting.moderate_votes:
        return Strength.MODERATE
    if leading >= voting.weak_votes and opposing <= voting.weak_max_opposing:
        return Strength.WEAK
    return Strength.NONE


def tally_votes(
    votes: Sequence[IndicatorSignal],
    voting: VotingConfig | None = None,
) -> VoteTally:
    """Count votes and derive the composite label.

    The side with more votes leads; ties are NEUTRAL. Confidence is the
    share of all votes held by the larger side, so neutral votes dilute it.
    Vote weights are not used.
    """
    voting = voting or VotingConfig()
    rise = sum(1 for v in votes if v.direction is Direction.RISE)
    fall = sum(1 for v in votes if v.direction is Direction.FALL)
    neutral = len(votes) - rise - fall

    direction = Direction.NEUTRAL
    strength = Strength.NONE
    if rise > fall:
        strength = _strength(rise, fall, voting)
        if strength is not Strength.NONE:
            direction = Direction.RISE
    elif fall > rise:
        strength = _strength(fall, rise, voting)
        if strength is not Strength.NONE:
            direction = Direction.FALL

    leading = max(rise, fall)
    total = len(votes)
    confidence = round_half_up(leading / total * 100) if total else 0

    return VoteTally(
        rise_count=rise,
        fall_count=fall,
        neutral_count=neutral,
        direction=direction,
        strength=strength,
        combined_label=_LABELS.get((direction, strength), CombinedLabel.NEUTRAL),
        confidence=confidence,
        confidence_score=f"{leading}/{total}",
    )
