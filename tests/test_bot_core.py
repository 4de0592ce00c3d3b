"""Tests for the bot core — lifecycle, registry access and the per-bar pipeline.

Verifies:
- start() validates every engine and fails naming the offender
- process_bar() ordering: range filter → risk gate → signal → sizing
- Recovery multiplier applied to position size
- Missing engines and no-signal bars produce no trade
- record_trade() streak bookkeeping
- Exit evaluation and the trade-signal sink
- Concurrent and re-entrant callers under the bot lock
"""

import threading

import pytest

from skycore.bot_core import BotCore, BotNotStartedError, BotStartupError
from skycore.config import BotConfig
from skycore.engines.base import Capability
from skycore.engines.recovery import RecoveryEngine
from skycore.engines.risk import RiskEngine
from skycore.engines.signal import SignalEngine
from skycore.models import (
    MarketData,
    RecoveryMode,
    SignalResult,
    SignalType,
    StreakType,
)


# ── Helpers ──────────────────────────────────────────────────────────────


class FixedSignalEngine(SignalEngine):
    """Signal engine returning a canned entry/exit answer."""

    name = "FixedSignalEngine"

    def __init__(self, entry: SignalResult, exit_result: SignalResult = SignalResult()):
        super().__init__()
        self._entry = entry
        self._exit = exit_result
        self.seen_markets = []

    def analyze_entry(self, market=None):
        self.seen_markets.append(market)
        return self._entry

    def analyze_exit(self, market=None):
        return self._exit


def _buy(confidence=0.8, reason="test buy"):
    return SignalResult(True, SignalType.BUY, confidence, reason)


def _sell(confidence=0.7, reason="test sell"):
    return SignalResult(True, SignalType.SELL, confidence, reason)


def _make_config(**overrides) -> BotConfig:
    defaults = dict(
        initial_capital=10_000.0,
        max_risk_per_trade=0.02,
        max_daily_drawdown=0.05,
        max_positions=3,
        atr_multiplier=2.0,
        risk_reward_ratio=2.0,
        max_consecutive_losses=3,
        recovery_mode=RecoveryMode.REDUCE_SIZE,
        range_tolerance=0.02,
        min_bars_in_range=10,
        avoid_ranging_markets=True,
        log_level="WARNING",
    )
    defaults.update(overrides)
    return BotConfig(**defaults)


def _make_bot(entry: SignalResult = None, exit_result=SignalResult(), sink=None, **overrides):
    bot = BotCore.from_config(_make_config(**overrides), on_trade_signal=sink)
    if entry is not None:
        signal_engine = FixedSignalEngine(entry, exit_result)
        signal_engine.initialize()
        bot.register_engine(signal_engine)
    return bot


def _trending_market(balance=10_000.0, open_positions=0, price=110.0, atr=0.5):
    highs = tuple(100.0 + i + 0.5 for i in range(20))
    lows = tuple(100.0 + i - 0.5 for i in range(20))
    closes = tuple(100.0 + i for i in range(20))
    return MarketData(
        current_price=price,
        account_balance=balance,
        open_positions=open_positions,
        atr=atr,
        recent_highs=highs,
        recent_lows=lows,
        recent_closes=closes,
    )


def _ranging_market(balance=10_000.0):
    return MarketData(
        current_price=100.0,
        account_balance=balance,
        open_positions=0,
        atr=0.5,
        recent_highs=(100.5,) * 20,
        recent_lows=(99.5,) * 20,
        recent_closes=(100.0,) * 20,
    )


# ── Lifecycle ────────────────────────────────────────────────────────────


class TestLifecycle:
    """Unit tests for start(), stop() and session state."""

    def test_from_config_installs_standard_engines(self):
        bot = _make_bot()
        names = [e.name for e in bot.engines]
        assert names == ["SignalEngine", "RiskEngine", "RecoveryEngine", "RangeDetector"]
        assert bot.bot_name == "SkyCoreAtlas"
        assert bot.version == "1.0.0"

    def test_start_initialises_metrics(self):
        bot = _make_bot()
        bot.start()
        m = bot.metrics
        assert bot.is_running is True
        assert m.initial_capital == 10_000.0
        assert m.current_capital == 10_000.0
        assert m.max_drawdown == 0.05

    def test_start_fails_on_disabled_engine(self):
        bot = _make_bot()
        bot.get_engine(Capability.RECOVERY).enabled = False
        with pytest.raises(BotStartupError, match="RecoveryEngine") as exc_info:
            bot.start()
        assert exc_info.value.engine_name == "RecoveryEngine"
        assert bot.is_running is False
        assert bot.metrics.initial_capital == 0.0

    def test_failed_restart_leaves_bot_stopped(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        bot.get_engine(Capability.RISK).enabled = False
        with pytest.raises(BotStartupError, match="RiskEngine"):
            bot.start()
        assert bot.is_running is False
        with pytest.raises(BotNotStartedError):
            bot.process_bar(_trending_market())

    def test_start_fails_on_uninitialised_engine(self):
        bot = BotCore(_make_config())
        bot.register_engine(RiskEngine())
        with pytest.raises(BotStartupError, match="RiskEngine"):
            bot.start()

    def test_process_bar_before_start_raises(self):
        with pytest.raises(BotNotStartedError):
            _make_bot().process_bar(_trending_market())

    def test_stop_keeps_registry_and_metrics(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        bot.process_bar(_trending_market(balance=10_100.0))
        bot.record_trade(True, 100.0)
        bot.stop()
        assert bot.is_running is False
        assert bot.get_engine(Capability.RISK) is not None
        assert bot.metrics.current_capital == 10_100.0
        assert bot.metrics.winning_trades == 1
        with pytest.raises(BotNotStartedError):
            bot.process_bar(_trending_market())

    def test_metrics_property_is_a_copy(self):
        bot = _make_bot()
        bot.start()
        snapshot = bot.metrics
        snapshot.winning_trades = 99
        assert bot.metrics.winning_trades == 0


# ── Registry access ──────────────────────────────────────────────────────


class TestRegistryAccess:
    """Unit tests for register_engine() and get_engine()."""

    def test_get_engine_by_capability_and_class(self):
        bot = _make_bot()
        risk = bot.get_engine(Capability.RISK)
        assert isinstance(risk, RiskEngine)
        assert bot.get_engine(RiskEngine) is risk

    def test_replacing_signal_engine(self):
        bot = _make_bot(entry=_buy())
        assert isinstance(bot.get_engine(Capability.SIGNAL), FixedSignalEngine)

    def test_unknown_signal_engine_key(self):
        with pytest.raises(KeyError):
            BotCore.from_config(_make_config(signal_engine="missing"))


# ── Pipeline ─────────────────────────────────────────────────────────────


class TestProcessBar:
    """Unit tests for the process_bar() decision pipeline."""

    def test_buy_signal_sized_and_protected(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        signal = bot.process_bar(_trending_market())

        assert signal is not None
        assert signal.signal_type == SignalType.BUY
        # 10000 × 0.02 / (0.5 × 2.0) = 200
        assert signal.size == pytest.approx(200.0)
        assert signal.stop_loss == pytest.approx(109.0)
        assert signal.take_profit == pytest.approx(112.0)
        assert signal.confidence == 0.8
        assert signal.reason == "test buy"
        assert bot.last_signal is signal

    def test_sell_signal_stops_above_entry(self):
        bot = _make_bot(entry=_sell())
        bot.start()
        signal = bot.process_bar(_trending_market())
        assert signal.signal_type == SignalType.SELL
        assert signal.stop_loss == pytest.approx(111.0)
        assert signal.take_profit == pytest.approx(108.0)

    def test_default_reason(self):
        bot = _make_bot(entry=SignalResult(True, SignalType.BUY, 0.5, None))
        bot.start()
        assert bot.process_bar(_trending_market()).reason == "Signal generated"

    def test_default_signal_engine_never_trades(self):
        bot = _make_bot()
        bot.start()
        assert bot.process_bar(_trending_market()) is None

    def test_ranging_market_blocks_any_signal(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        assert bot.process_bar(_ranging_market()) is None
        signal_engine = bot.get_engine(Capability.SIGNAL)
        assert signal_engine.seen_markets == []

    def test_ranging_market_allowed_when_not_avoided(self):
        bot = _make_bot(entry=_buy(), avoid_ranging_markets=False)
        bot.start()
        assert bot.process_bar(_ranging_market()) is not None

    def test_drawdown_limit_blocks_entry(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        # (10000 - 9400) / 10000 = 6% >= 5%
        assert bot.process_bar(_trending_market(balance=9_400.0)) is None
        assert bot.metrics.current_drawdown == pytest.approx(0.06)
        assert bot.metrics.current_capital == 9_400.0

    def test_position_limit_blocks_entry(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        assert bot.process_bar(_trending_market(open_positions=3)) is None

    def test_signal_engine_receives_snapshot(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        market = _trending_market()
        bot.process_bar(market)
        assert bot.get_engine(Capability.SIGNAL).seen_markets == [market]

    def test_close_direction_is_not_an_entry(self):
        bot = _make_bot(entry=SignalResult(True, SignalType.CLOSE, 1.0, "close"))
        bot.start()
        assert bot.process_bar(_trending_market()) is None

    def test_losing_streak_halves_size(self):
        bot = _make_bot(entry=_buy())
        bot.start()
        for _ in range(3):
            bot.record_trade(False, -50.0)
        signal = bot.process_bar(_trending_market())
        assert signal.size == pytest.approx(100.0)

    def test_stop_mode_emits_zero_size(self):
        bot = _make_bot(entry=_buy(), recovery_mode=RecoveryMode.STOP)
        bot.start()
        for _ in range(3):
            bot.record_trade(False, -50.0)
        signal = bot.process_bar(_trending_market())
        assert signal.size == 0.0

    def test_drawdown_recovery_reduces_size(self):
        bot = _make_bot(entry=_buy(), recovery_mode=RecoveryMode.CONSERVATIVE)
        bot.start()
        # 4% drawdown: recovery active (>= 3.5%) but below the 5% risk limit
        signal = bot.process_bar(_trending_market(balance=9_600.0))
        # 9600 × 0.02 / 1.0 × 0.25 = 48
        assert signal.size == pytest.approx(48.0)

    def test_missing_engine_yields_no_trade(self):
        bot = BotCore(_make_config())
        signal_engine = FixedSignalEngine(_buy())
        signal_engine.initialize()
        bot.register_engine(signal_engine)
        bot.start()
        assert bot.process_bar(_trending_market()) is None

    def test_sink_receives_signal(self):
        received = []
        bot = _make_bot(entry=_buy(), sink=received.append)
        bot.start()
        signal = bot.process_bar(_trending_market())
        assert received == [signal]

    def test_bar_count(self):
        bot = _make_bot()
        bot.start()
        for _ in range(3):
            bot.process_bar(_trending_market())
        assert bot.bar_count == 3


# ── Drawdown tracking ────────────────────────────────────────────────────


class TestDrawdownTracking:
    """Drawdown bookkeeping across bars."""

    def test_drawdown_measured_from_last_capital_when_higher(self):
        bot = _make_bot()
        bot.start()
        bot.process_bar(_trending_market(balance=11_000.0))
        bot.process_bar(_trending_market(balance=10_450.0))
        # peak = max(10000, 11000) → (11000 - 10450) / 11000 = 5%
        assert bot.metrics.current_drawdown == pytest.approx(0.05)

    def test_gain_gives_negative_drawdown(self):
        bot = _make_bot()
        bot.start()
        bot.process_bar(_trending_market(balance=10_500.0))
        assert bot.metrics.current_drawdown == pytest.approx(-0.05)

    def test_zero_initial_capital(self):
        bot = _make_bot(initial_capital=0.0)
        bot.start()
        bot.process_bar(_trending_market(balance=500.0))
        assert bot.metrics.current_drawdown == 0.0


# ── Closed trades ────────────────────────────────────────────────────────


class TestRecordTrade:
    """Unit tests for BotCore.record_trade() and recovery_status()."""

    def test_streaks(self):
        bot = _make_bot()
        bot.start()
        bot.record_trade(True, 120.0)
        bot.record_trade(True, 80.0)
        m = bot.metrics
        assert (m.streak_type, m.current_streak) == (StreakType.WINNING, 2)

        bot.record_trade(False, -60.0)
        m = bot.metrics
        assert (m.streak_type, m.current_streak) == (StreakType.LOSING, 1)
        assert m.winning_trades == 2
        assert m.losing_trades == 1
        assert m.total_profit == pytest.approx(200.0)
        assert m.total_loss == pytest.approx(60.0)

    def test_recovery_status_follows_trades(self):
        bot = _make_bot()
        bot.start()
        assert bot.recovery_status().is_active is False
        for _ in range(3):
            bot.record_trade(False, -10.0)
        status = bot.recovery_status()
        assert status.is_active is True
        assert status.position_size_multiplier == 0.5

    def test_recovery_status_without_engine(self):
        assert BotCore(_make_config()).recovery_status() is None

    def test_recovery_status_before_start(self):
        bot = _make_bot()
        assert bot.recovery_status() is None
        bot.start()
        bot.stop()
        assert bot.recovery_status().reason == "Normal"

    def test_recovery_engine_replaceable(self):
        bot = _make_bot()
        custom = RecoveryEngine()
        custom.initialize()
        bot.register_engine(custom)
        assert bot.get_engine(Capability.RECOVERY) is custom


# ── Exit evaluation ──────────────────────────────────────────────────────


class TestEvaluateExit:
    """Unit tests for evaluate_exit()."""

    def test_no_exit_by_default(self):
        bot = _make_bot()
        bot.start()
        assert bot.evaluate_exit(_trending_market()) is None

    def test_exit_signal_becomes_close(self):
        received = []
        bot = _make_bot(
            entry=SignalResult(),
            exit_result=SignalResult(True, SignalType.CLOSE, 0.6, "target reached"),
            sink=received.append,
        )
        bot.start()
        signal = bot.evaluate_exit(_trending_market())
        assert signal.signal_type == SignalType.CLOSE
        assert signal.size == 0.0
        assert signal.reason == "target reached"
        assert received == [signal]

    def test_exit_before_start_raises(self):
        with pytest.raises(BotNotStartedError):
            _make_bot().evaluate_exit(_trending_market())


# ── Concurrency ──────────────────────────────────────────────────────────


class TestConcurrency:
    """Concurrent callers share the bot's lock."""

    def test_parallel_trades_and_bars_are_all_booked(self):
        bot = _make_bot(entry=_buy(), avoid_ranging_markets=False)
        bot.start()
        per_thread = 50

        def worker(is_win):
            for _ in range(per_thread):
                bot.record_trade(is_win, 10.0 if is_win else -10.0)
                bot.process_bar(_trending_market())

        threads = [threading.Thread(target=worker, args=(i % 2 == 0,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        m = bot.metrics
        assert m.winning_trades == 3 * per_thread
        assert m.losing_trades == 3 * per_thread
        assert m.winning_trades + m.losing_trades == 6 * per_thread
        assert m.total_profit == pytest.approx(1_500.0)
        assert m.total_loss == pytest.approx(1_500.0)
        assert m.streak_type in (StreakType.WINNING, StreakType.LOSING)
        assert 1 <= m.current_streak <= 6 * per_thread
        assert bot.bar_count == 6 * per_thread

    def test_sink_may_call_back_into_bot(self):
        def sink(signal):
            bot.record_trade(True, 25.0)

        bot = _make_bot(entry=_buy(), sink=sink)
        bot.start()
        worker = threading.Thread(target=bot.process_bar, args=(_trending_market(),))
        worker.start()
        worker.join(timeout=5)
        assert not worker.is_alive()
        assert bot.metrics.winning_trades == 1
        assert bot.last_signal is not None
