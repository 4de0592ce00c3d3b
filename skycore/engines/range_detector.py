"""Range detector — classifies recent price action as ranging or trending.

Also estimates support/resistance over the most recent bars and how
often price has touched them.
"""

from typing import Sequence

import numpy as np

from skycore.engines.base import BaseEngine, Capability
from skycore.engines.parameters import RangeSettings
from skycore.models import SupportResistanceLevels

# A bar touches a level when within this fraction of the range width.
# TODO: promote to RangeSettings once the default is agreed on.
TOUCH_TOLERANCE_RATIO = 0.1


class RangeDetector(BaseEngine):
    """Horizontal-range sensor over high/low/close series."""

    name = "RangeDetector"
    capabilities = frozenset({Capability.RANGE_DETECTION})
    settings_class = RangeSettings

    def is_market_ranging(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
    ) -> bool:
        """``True`` if the whole window's span is within ``range_tolerance``.

        Formula::

            range_pct = (max(highs) − min(lows)) / ((max(highs) + min(lows)) / 2)

        Needs at least ``min_bars_in_range`` bars; a disabled detector
        never reports a range.
        """
        if not self.enabled:
            return False
        highs_arr = np.asarray(highs, dtype=float)
        lows_arr = np.asarray(lows, dtype=float)
        if highs_arr.size < self.settings.min_bars_in_range:
            return False
        if highs_arr.size == 0 or lows_arr.size == 0:
            return False

        max_high = float(highs_arr.max())
        min_low = float(lows_arr.min())
        midpoint = (max_high + min_low) / 2
        if midpoint <= 0:
            return False
        range_pct = (max_high - min_low) / midpoint
        return range_pct <= self.settings.range_tolerance

    def detect_levels(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
    ) -> SupportResistanceLevels:
        """Support/resistance over the last ``min_bars_in_range`` bars.

        With shorter history the levels span whatever bars exist but are
        marked invalid.
        """
        highs_arr = np.asarray(highs, dtype=float)
        lows_arr = np.asarray(lows, dtype=float)
        if highs_arr.size == 0 or lows_arr.size == 0:
            return SupportResistanceLevels()

        window = self.settings.min_bars_in_range
        recent_highs = highs_arr[-window:] if window > 0 else highs_arr
        recent_lows = lows_arr[-window:] if window > 0 else lows_arr
        return SupportResistanceLevels(
            support=float(recent_lows.min()),
            resistance=float(recent_highs.max()),
            is_valid=highs_arr.size >= window,
        )

    def calculate_range_strength(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
    ) -> float:
        """Touch density of the detected levels, in ``[0, 1]``.

        Counts every bar whose high sits within tolerance of resistance
        and every bar whose low sits within tolerance of support, then
        normalises by ``2 × min_bars_in_range``.
        """
        highs_arr = np.asarray(highs, dtype=float)
        lows_arr = np.asarray(lows, dtype=float)
        if highs_arr.size < 2:
            return 0.0

        levels = self.detect_levels(highs_arr, lows_arr, closes)
        if not levels.is_valid:
            return 0.0

        tolerance = levels.range_size * TOUCH_TOLERANCE_RATIO
        touches = int(np.count_nonzero(np.abs(highs_arr - levels.resistance) <= tolerance))
        touches += int(np.count_nonzero(np.abs(lows_arr - levels.support) <= tolerance))

        denominator = max(self.settings.min_bars_in_range * 2, 1)
        return min(1.0, touches / denominator)
