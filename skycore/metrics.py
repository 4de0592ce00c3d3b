"""Session metrics bookkeeping — pure math, no I/O.

Drawdown is measured against the larger of the initial capital and the
last recorded capital.  Closed trades update the win/loss counters and
the signed streak carried by ``TradingMetrics``.
"""

from skycore.models import StreakType, TradingMetrics


def calculate_drawdown(
    initial_capital: float,
    last_capital: float,
    current_equity: float,
) -> float:
    """Return the drawdown of *current_equity* as a fraction of peak.

    Formula::

        peak     = max(initial_capital, last_capital)
        drawdown = (peak − current_equity) / peak

    Returns ``0.0`` when no initial capital has been configured or the
    peak is not positive.  A negative result means equity is above peak.
    """
    if initial_capital == 0:
        return 0.0
    peak = max(initial_capital, last_capital)
    if peak <= 0:
        return 0.0
    return (peak - current_equity) / peak


def update_equity(metrics: TradingMetrics, current_equity: float) -> None:
    """Record the latest equity and its drawdown on *metrics*."""
    drawdown = calculate_drawdown(
        metrics.initial_capital, metrics.current_capital, current_equity
    )
    metrics.current_capital = current_equity
    metrics.current_drawdown = drawdown


def record_trade(
    metrics: TradingMetrics,
    is_win: bool,
    profit_or_loss: float,
) -> None:
    """Book one closed trade on *metrics*.

    Wins add to ``total_profit``; losses add ``|profit_or_loss|`` to
    ``total_loss``.  A result with the same sign as the current streak
    extends it, otherwise the streak restarts at 1 with the new sign.
    """
    if is_win:
        metrics.winning_trades += 1
        metrics.total_profit += profit_or_loss
        outcome = StreakType.WINNING
    else:
        metrics.losing_trades += 1
        metrics.total_loss += abs(profit_or_loss)
        outcome = StreakType.LOSING

    if metrics.streak_type == outcome:
        metrics.current_streak += 1
    else:
        metrics.streak_type = outcome
        metrics.current_streak = 1
