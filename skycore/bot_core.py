"""SkyCore — bot core (engine registry + per-bar decision pipeline).

Owns the installed engines and the session ``TradingMetrics``.  Each
``process_bar`` call consults recovery → range detection → risk gate →
signal, then sizes the trade and emits a ``TradeSignal`` (or nothing).
The core never talks to a broker; emitted signals go to the optional
``on_trade_signal`` sink and are returned to the caller.
"""

import dataclasses
import logging
import threading
from typing import Callable, Optional

from skycore.config import BotConfig
from skycore.engines.base import Capability, EngineProtocol, describe_engine
from skycore.engines.parameters import SignalSettings
from skycore.engines.range_detector import RangeDetector
from skycore.engines.recovery import RecoveryEngine
from skycore.engines.registry import EngineKey, EngineRegistry, get_signal_engine
from skycore.engines.risk import RiskEngine
from skycore.metrics import record_trade, update_equity
from skycore.models import (
    MarketData,
    RecoveryStatus,
    SignalType,
    TradeSignal,
    TradingMetrics,
)

logger = logging.getLogger("skycore.bot_core")

TradeSignalSink = Callable[[TradeSignal], None]

_ENTRY_DIRECTIONS = (SignalType.BUY, SignalType.SELL)


class BotStartupError(RuntimeError):
    """An installed engine failed validation; the bot did not start."""

    def __init__(self, engine_name: str) -> None:
        super().__init__(f"Engine '{engine_name}' is not configured correctly")
        self.engine_name = engine_name


class BotNotStartedError(RuntimeError):
    """A decision method was called before a successful ``start()``."""


class BotCore:
    """Coordinator for one trading bot.

    Args:
        config: Bot configuration.  Defaults to ``BotConfig()``.
        on_trade_signal: Optional callable receiving every emitted
                         ``TradeSignal`` (the order-execution host).
    """

    version = "1.0.0"

    def __init__(
        self,
        config: Optional[BotConfig] = None,
        on_trade_signal: Optional[TradeSignalSink] = None,
    ) -> None:
        self._config = config or BotConfig()
        self._on_trade_signal = on_trade_signal
        self._registry = EngineRegistry()
        self._metrics = TradingMetrics()
        self._running: bool = False
        self._session_opened: bool = False
        self._bar_count: int = 0
        self._last_signal: Optional[TradeSignal] = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: Optional[BotConfig] = None,
        on_trade_signal: Optional[TradeSignalSink] = None,
    ) -> "BotCore":
        """Build a bot with the four standard engines initialised from *config*.

        The signal engine is resolved from ``config.signal_engine`` via the
        signal engine registry.
        """
        bot = cls(config, on_trade_signal=on_trade_signal)
        cfg = bot.config

        signal_engine = get_signal_engine(cfg.signal_engine)
        signal_engine.initialize(SignalSettings())
        bot.register_engine(signal_engine)

        risk = RiskEngine()
        risk.initialize(cfg.risk_settings())
        bot.register_engine(risk)

        recovery = RecoveryEngine()
        recovery.initialize(cfg.recovery_settings())
        bot.register_engine(recovery)

        detector = RangeDetector()
        detector.initialize(cfg.range_settings())
        bot.register_engine(detector)
        return bot

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def bot_name(self) -> str:
        return self._config.bot_name

    @property
    def config(self) -> BotConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bar_count(self) -> int:
        return self._bar_count

    @property
    def metrics(self) -> TradingMetrics:
        """A copy of the session metrics; mutate only through the bot."""
        with self._lock:
            return dataclasses.replace(self._metrics)

    @property
    def last_signal(self) -> Optional[TradeSignal]:
        return self._last_signal

    @property
    def engines(self) -> list[EngineProtocol]:
        """Distinct installed engines, in registration order."""
        return list(self._registry)

    # ── Registry ─────────────────────────────────────────────────────────

    def register_engine(self, engine: EngineProtocol) -> None:
        """Install *engine* under its class and every capability it declares.

        A later engine registered under the same key replaces the earlier one.
        """
        keys = self._registry.register(engine)
        logger.debug(
            "Registered %s under %s",
            engine.name,
            ", ".join(k.value if isinstance(k, Capability) else k.__name__ for k in keys),
        )

    def get_engine(self, key: EngineKey) -> Optional[EngineProtocol]:
        """Return the engine for a class or capability, or ``None``."""
        return self._registry.get(key)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Validate every engine, then open a fresh session.

        Raises:
            BotStartupError: If any engine's ``validate()`` is ``False``.
                The bot stays stopped and metrics are untouched.
        """
        with self._lock:
            self._running = False
            for engine in self._registry:
                if not engine.validate():
                    logger.error("Engine '%s' failed validation.", engine.name)
                    raise BotStartupError(engine.name)

            logger.info("%s v%s started", self.bot_name, self.version)
            for engine in self._registry:
                info = describe_engine(engine)
                logger.info(
                    "  %s v%s [%s]",
                    info["name"], info["version"], ", ".join(info["capabilities"]),
                )

            self._metrics = TradingMetrics(
                initial_capital=self._config.initial_capital,
                current_capital=self._config.initial_capital,
                max_drawdown=self._config.max_daily_drawdown,
            )
            self._bar_count = 0
            self._last_signal = None
            self._running = True
            self._session_opened = True

    def stop(self) -> None:
        """Stop the session; registry and metrics remain readable."""
        with self._lock:
            self._running = False
            m = self._metrics
            logger.info("%s stopped", self.bot_name)
            logger.info(
                "Session: initial $%.2f, final $%.2f, P/L $%.2f, "
                "win rate %.2f%%, profit factor %.2f, trades %d (%d won / %d lost)",
                m.initial_capital,
                m.current_capital,
                m.net_pnl,
                m.win_rate * 100,
                m.profit_factor,
                m.total_trades,
                m.winning_trades,
                m.losing_trades,
            )

    # ── Decision pipeline ────────────────────────────────────────────────

    def process_bar(self, market: MarketData) -> Optional[TradeSignal]:
        """Run one decision cycle for a new bar.

        Returns the emitted ``TradeSignal``, or ``None`` when the cycle
        ends without an entry (ranging market, risk gate, no signal, or a
        required engine missing).

        Raises:
            BotNotStartedError: If ``start()`` has not succeeded.
        """
        with self._lock:
            self._require_running()
            self._bar_count += 1

            signal_engine = self._registry.get(Capability.SIGNAL)
            risk = self._registry.get(Capability.RISK)
            recovery = self._registry.get(Capability.RECOVERY)
            detector = self._registry.get(Capability.RANGE_DETECTION)
            if signal_engine is None or risk is None or recovery is None or detector is None:
                logger.debug("Bar %d skipped: required engine missing", self._bar_count)
                return None

            # 1 ── Metrics
            update_equity(self._metrics, market.account_balance)

            # 2 ── Recovery
            status = recovery.get_status(self._metrics)
            if status.is_active:
                logger.warning("Recovery mode active: %s", status.reason)

            # 3 ── Ranging market filter
            is_ranging = detector.is_market_ranging(
                market.recent_highs, market.recent_lows, market.recent_closes,
            )
            if is_ranging and self._config.avoid_ranging_markets:
                logger.info("Market ranging — entry skipped")
                return None

            # 4 ── Risk gate
            if not risk.can_open_position(self._metrics, market.open_positions):
                return None

            # 5 ── Entry signal
            entry = signal_engine.analyze_entry(market)
            if not entry.has_signal:
                return None
            if entry.signal_type not in _ENTRY_DIRECTIONS:
                logger.debug(
                    "Ignoring entry signal with direction %s", entry.signal_type.value,
                )
                return None
            is_long = entry.signal_type == SignalType.BUY

            # 6 ── Size
            base_size = risk.calculate_position_size(
                market.account_balance,
                market.atr * self._config.atr_multiplier,
            )
            size = base_size * status.position_size_multiplier

            # 7 ── Stops
            stop_loss = risk.calculate_stop_loss(market.current_price, is_long, market.atr)
            take_profit = risk.calculate_take_profit(market.current_price, stop_loss, is_long)

            # 8 ── Emit
            signal = TradeSignal(
                signal_type=entry.signal_type,
                size=size,
                stop_loss=stop_loss,
                take_profit=take_profit,
                confidence=entry.confidence,
                reason=entry.reason or "Signal generated",
            )
            return self._emit(signal)

    def evaluate_exit(self, market: MarketData) -> Optional[TradeSignal]:
        """Ask the signal engine whether open positions should close.

        Returns a ``close`` ``TradeSignal`` (size 0, no stops) or ``None``.
        """
        with self._lock:
            self._require_running()
            signal_engine = self._registry.get(Capability.SIGNAL)
            if signal_engine is None:
                return None
            exit_result = signal_engine.analyze_exit(market)
            if not exit_result.has_signal:
                return None
            signal = TradeSignal(
                signal_type=SignalType.CLOSE,
                size=0.0,
                stop_loss=0.0,
                take_profit=0.0,
                confidence=exit_result.confidence,
                reason=exit_result.reason or "Exit signal",
            )
            return self._emit(signal)

    def record_trade(self, is_win: bool, profit_or_loss: float) -> None:
        """Book a closed position reported by the execution host."""
        with self._lock:
            record_trade(self._metrics, is_win, profit_or_loss)
            logger.info(
                "Trade closed: %s %.2f (streak %d %s)",
                "win" if is_win else "loss",
                profit_or_loss,
                self._metrics.current_streak,
                self._metrics.streak_type.name.lower(),
            )

    def recovery_status(self) -> Optional[RecoveryStatus]:
        """Recovery verdict for the current metrics.

        ``None`` when no recovery engine is installed or no session has been
        started yet (empty metrics would read as a 0 % drawdown breach).
        """
        with self._lock:
            recovery = self._registry.get(Capability.RECOVERY)
            if recovery is None or not self._session_opened:
                return None
            return recovery.get_status(self._metrics)

    # ── Internals ────────────────────────────────────────────────────────

    def _require_running(self) -> None:
        if not self._running:
            raise BotNotStartedError(
                f"{self.bot_name} is not running; call start() first"
            )

    def _emit(self, signal: TradeSignal) -> TradeSignal:
        self._last_signal = signal
        logger.info(
            "Trade signal: %s size=%.4f SL=%.5f TP=%.5f conf=%.2f (%s)",
            signal.signal_type.value,
            signal.size,
            signal.stop_loss,
            signal.take_profit,
            signal.confidence,
            signal.reason,
        )
        if self._on_trade_signal is not None:
            self._on_trade_signal(signal)
        return signal
