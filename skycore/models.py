"""SkyCore data models — typed representations for engine inputs and outputs."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SignalType(str, Enum):
    """Direction carried by a signal or trade intent."""

    NONE = "none"
    BUY = "buy"
    SELL = "sell"
    CLOSE = "close"


class StreakType(int, Enum):
    """Sign of the current run of same-outcome trades."""

    LOSING = -1
    NONE = 0
    WINNING = 1


class RecoveryMode(str, Enum):
    """Position-sizing policy applied while recovery is active."""

    REDUCE_SIZE = "reduce_size"
    STOP = "stop"
    CONSERVATIVE = "conservative"


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar, as supplied by the host platform."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


@dataclass(frozen=True)
class MarketData:
    """Per-bar market and account snapshot handed to ``BotCore.process_bar``.

    The price series are ordered oldest → newest and share one length.
    """

    current_price: float
    account_balance: float
    open_positions: int = 0
    atr: float = 0.0
    recent_highs: tuple[float, ...] = ()
    recent_lows: tuple[float, ...] = ()
    recent_closes: tuple[float, ...] = ()


@dataclass(frozen=True)
class SignalResult:
    """Answer of a signal engine to an entry or exit query."""

    has_signal: bool = False
    signal_type: SignalType = SignalType.NONE
    confidence: float = 0.0
    reason: Optional[str] = None


@dataclass(frozen=True)
class TradeSignal:
    """Trade intent emitted by the bot for the order-execution host."""

    signal_type: SignalType
    size: float
    stop_loss: float
    take_profit: float
    confidence: float
    reason: str


@dataclass(frozen=True)
class SupportResistanceLevels:
    """Support and resistance prices detected over recent bars."""

    support: float = 0.0
    resistance: float = 0.0
    is_valid: bool = False

    @property
    def range_size(self) -> float:
        return self.resistance - self.support


@dataclass(frozen=True)
class RecoveryStatus:
    """Snapshot of the recovery engine's decision for one set of metrics."""

    is_active: bool
    mode: RecoveryMode
    reason: str
    position_size_multiplier: float


@dataclass
class TradingMetrics:
    """Running state of a trading session.

    ``current_streak`` is always a positive count (or 0 with no trades);
    its sign lives in ``streak_type``.  Drawdowns are fractions of peak
    equity (0.05 = 5 %).
    """

    current_drawdown: float = 0.0
    max_drawdown: float = 0.0
    current_capital: float = 0.0
    initial_capital: float = 0.0
    current_streak: int = 0
    streak_type: StreakType = StreakType.NONE
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: float = 0.0
    total_loss: float = 0.0

    @property
    def total_trades(self) -> int:
        return self.winning_trades + self.losing_trades

    @property
    def win_rate(self) -> float:
        """Fraction of closed trades that were winners (0 with no trades)."""
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades

    @property
    def profit_factor(self) -> float:
        """Gross profit ÷ gross loss (0 while no loss has been booked)."""
        if self.total_loss <= 0:
            return 0.0
        return self.total_profit / abs(self.total_loss)

    @property
    def capital_usage_percent(self) -> float:
        """Capital change since session start, as a percentage of initial."""
        if self.initial_capital <= 0:
            return 0.0
        return (
            (self.current_capital - self.initial_capital) / self.initial_capital
        ) * 100.0

    @property
    def net_pnl(self) -> float:
        return self.current_capital - self.initial_capital

    def summary(self) -> dict:
        """Plain-dict view used by logging and the reporting API."""
        return {
            "initial_capital": self.initial_capital,
            "current_capital": self.current_capital,
            "net_pnl": round(self.net_pnl, 2),
            "current_drawdown": self.current_drawdown,
            "max_drawdown": self.max_drawdown,
            "current_streak": self.current_streak,
            "streak_type": self.streak_type.name.lower(),
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "total_trades": self.total_trades,
            "total_profit": self.total_profit,
            "total_loss": self.total_loss,
            "win_rate": self.win_rate,
            "profit_factor": self.profit_factor,
            "capital_usage_percent": self.capital_usage_percent,
        }

