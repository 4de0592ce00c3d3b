"""Recovery engine — dampens position size under losing-streak or drawdown stress.

Recovery activates when either trigger holds:

- the current streak is losing and at least ``max_consecutive_losses`` long;
- drawdown has reached ``DRAWDOWN_TRIGGER_RATIO`` of the session maximum.

While active, the configured ``RecoveryMode`` sets the size multiplier.
"""

from skycore.engines.base import BaseEngine, Capability
from skycore.engines.parameters import RecoverySettings
from skycore.models import RecoveryMode, RecoveryStatus, StreakType, TradingMetrics

# Fraction of max drawdown that triggers recovery.
# TODO: promote to RecoverySettings once the default is agreed on.
DRAWDOWN_TRIGGER_RATIO = 0.7

MODE_SIZE_MULTIPLIERS: dict[RecoveryMode, float] = {
    RecoveryMode.REDUCE_SIZE: 0.5,
    RecoveryMode.STOP: 0.0,
    RecoveryMode.CONSERVATIVE: 0.25,
}


class RecoveryEngine(BaseEngine):
    """Position-size policy for a bot under stress."""

    name = "RecoveryEngine"
    capabilities = frozenset({Capability.RECOVERY})
    settings_class = RecoverySettings

    @property
    def mode(self) -> RecoveryMode:
        return self.settings.mode

    def _losing_streak_triggered(self, metrics: TradingMetrics) -> bool:
        return (
            metrics.streak_type == StreakType.LOSING
            and abs(metrics.current_streak) >= self.settings.max_consecutive_losses
        )

    @staticmethod
    def _drawdown_triggered(metrics: TradingMetrics) -> bool:
        return metrics.current_drawdown >= metrics.max_drawdown * DRAWDOWN_TRIGGER_RATIO

    def should_activate_recovery(self, metrics: TradingMetrics) -> bool:
        """``True`` when either trigger holds (never for a disabled engine)."""
        if not self.enabled:
            return False
        return self._losing_streak_triggered(metrics) or self._drawdown_triggered(metrics)

    def get_position_size_multiplier(self, metrics: TradingMetrics) -> float:
        """1.0 outside recovery, otherwise the multiplier of the active mode."""
        if not self.should_activate_recovery(metrics):
            return 1.0
        return MODE_SIZE_MULTIPLIERS.get(self.mode, 1.0)

    def get_status(self, metrics: TradingMetrics) -> RecoveryStatus:
        return RecoveryStatus(
            is_active=self.should_activate_recovery(metrics),
            mode=self.mode,
            reason=self._reason(metrics),
            position_size_multiplier=self.get_position_size_multiplier(metrics),
        )

    def _reason(self, metrics: TradingMetrics) -> str:
        # Streak reason wins when both triggers hold.
        if self._losing_streak_triggered(metrics):
            return f"Losing streak of {abs(metrics.current_streak)} trades"
        if self._drawdown_triggered(metrics):
            return f"High drawdown: {metrics.current_drawdown:.2%}"
        return "Normal"
