"""Snapshot builder — turns host candles into a ``MarketData`` bar snapshot."""

from skycore.indicators import calculate_atr
from skycore.models import CandleData, MarketData


def build_market_data(
    candles: list[CandleData],
    current_price: float,
    account_balance: float,
    open_positions: int = 0,
    lookback: int = 20,
    atr_period: int = 14,
) -> MarketData:
    """Build the per-bar snapshot consumed by ``BotCore.process_bar``.

    Args:
        candles: Completed candles, oldest first.
        current_price: Latest quote (entry price for any signal).
        account_balance: Current account balance.
        open_positions: Number of positions currently open.
        lookback: How many recent bars to copy into the price series.
        atr_period: ATR period.  Needs ``atr_period + 1`` candles.

    Raises:
        ValueError: If *lookback* is not positive or there are too few
            candles for the ATR.
    """
    if lookback <= 0:
        raise ValueError(f"lookback must be positive, got {lookback}")
    atr = calculate_atr(candles, atr_period)
    recent = candles[-lookback:]
    return MarketData(
        current_price=current_price,
        account_balance=account_balance,
        open_positions=open_positions,
        atr=atr,
        recent_highs=tuple(c.high for c in recent),
        recent_lows=tuple(c.low for c in recent),
        recent_closes=tuple(c.close for c in recent),
    )
