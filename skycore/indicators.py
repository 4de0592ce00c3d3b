"""Technical indicators — ATR. Pure functions, no I/O."""

from skycore.models import CandleData


def calculate_atr(candles: list[CandleData], period: int = 14) -> float:
    """Calculate the Average True Range over *period* candles.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Requires at least ``period + 1`` candles (need a previous close for TR).
    Returns the simple average of the last *period* true ranges.

    Raises ``ValueError`` if insufficient data.
    """
    if period < 1:
        raise ValueError(f"period must be positive, got {period}")
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for ATR({period}), "
            f"got {len(candles)}"
        )

    true_ranges: list[float] = []
    for prev, bar in zip(candles, candles[1:]):
        true_ranges.append(max(
            bar.high - bar.low,
            abs(bar.high - prev.close),
            abs(bar.low - prev.close),
        ))

    recent = true_ranges[-period:]
    return sum(recent) / len(recent)
