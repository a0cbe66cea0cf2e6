"""Swing support/resistance levels.

Local extrema over a trailing window are clustered into price levels; a
level is only kept once price has touched it a minimum number of times.
"""

from dataclasses import dataclass

from signal_core.indicators.indicators import ArrayLike, _as_array
from signal_core.models.snapshots import SupportResistanceLevels

MIN_WINDOW_BARS = 10


@dataclass
class _LevelGroup:
    level: float
    touches: int = 1


def is_near_level(price: float, level: float | None, pct: float = 0.1) -> bool:
    """Check if price is within `pct` percent of a level.

    A missing (None/zero) level or a non-positive price is never near.
    """
    if not level or price <= 0:
        return False
    return abs(price - level) / price <= pct / 100


class LevelManager:
    """Detects and clusters swing highs/lows into support and resistance."""

    def __init__(
        self,
        lookback: int = 100,
        tolerance_pct: float = 0.05,
        min_touches: int = 2,
    ):
        """
        Args:
            lookback: Trailing bars scanned for swing points
            tolerance_pct: Max distance (percent of price) to merge into a level
            min_touches: Minimum touches for a level to be reported
        """
        self.lookback = lookback
        self.tolerance_pct = tolerance_pct
        self.min_touches = min_touches

    def _merge(self, groups: list[_LevelGroup], price: float) -> None:
        """Merge a swing price into the first group within tolerance."""
        tolerance = price * (self.tolerance_pct / 100)
        for group in groups:
            if abs(group.level - price) <= tolerance:
                group.level = (group.level * group.touches + price) / (group.touches + 1)
                group.touches += 1
                return
        groups.append(_LevelGroup(level=price))

    def find_levels(
        self,
        highs: ArrayLike,
        lows: ArrayLike,
        closes: ArrayLike,
    ) -> SupportResistanceLevels:
        """
        Find clustered support/resistance levels relative to the latest close.

        A bar is a swing low when its low is <= both neighbours and a swing
        high when its high is >= both neighbours. The first and last two bars
        of the window are not scanned.

        Returns:
            SupportResistanceLevels (empty when the window has < 10 bars)
        """
        h = _as_array(highs)[-self.lookback :]
        l = _as_array(lows)[-self.lookback :]
        c = _as_array(closes)[-self.lookback :]
        if len(c) < MIN_WINDOW_BARS:
            return SupportResistanceLevels()

        groups: list[_LevelGroup] = []
        for i in range(2, len(c) - 2):
            if l[i] <= l[i - 1] and l[i] <= l[i + 1]:
                self._merge(groups, float(l[i]))
            if h[i] >= h[i - 1] and h[i] >= h[i + 1]:
                self._merge(groups, float(h[i]))

        levels = sorted(g.level for g in groups if g.touches >= self.min_touches)
        close = float(c[-1])
        supports = [level for level in levels if level <= close]
        resistances = [level for level in levels if level >= close]

        return SupportResistanceLevels(
            supports=supports,
            resistances=resistances,
            nearest_support=supports[-1] if supports else None,
            nearest_resistance=resistances[0] if resistances else None,
        )


def swing_support_resistance(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    lookback: int = 100,
    tolerance_pct: float = 0.05,
    min_touches: int = 2,
) -> SupportResistanceLevels:
    """Functional shortcut for LevelManager.find_levels."""
    return LevelManager(lookback, tolerance_pct, min_touches).find_levels(highs, lows, closes)
