"""Risk engine — position sizing, entry gate, stop-loss and take-profit.

Pure math over explicit inputs plus the settings stored at
``initialize``.  Degenerate stop distances size to zero instead of
raising.
"""

import logging

from skycore.engines.base import BaseEngine, Capability
from skycore.engines.parameters import RiskSettings
from skycore.models import TradingMetrics

logger = logging.getLogger("skycore.engines.risk")


class RiskEngine(BaseEngine):
    """Protects capital: how much to trade, whether to trade, where to exit."""

    name = "RiskEngine"
    capabilities = frozenset({Capability.RISK})
    settings_class = RiskSettings

    def calculate_position_size(
        self,
        account_balance: float,
        stop_loss_distance: float,
    ) -> float:
        """Calculate position size from the risked fraction of balance.

        Formula::

            risk_amount = account_balance × max_risk_per_trade
            size        = risk_amount / stop_loss_distance

        Returns ``0.0`` when *stop_loss_distance* is not positive.
        """
        if stop_loss_distance <= 0:
            return 0.0
        risk_amount = account_balance * self.settings.max_risk_per_trade
        return risk_amount / stop_loss_distance

    def can_open_position(
        self,
        metrics: TradingMetrics,
        open_positions: int,
    ) -> bool:
        """Return ``True`` if a new position may be opened.

        A disabled engine always permits opening.  Otherwise entry is
        refused once drawdown reaches ``max_daily_drawdown`` or the open
        position count reaches ``max_positions``.
        """
        if not self.enabled:
            return True

        settings = self.settings
        if metrics.current_drawdown >= settings.max_daily_drawdown:
            logger.debug(
                "Entry refused: drawdown %.4f >= limit %.4f",
                metrics.current_drawdown, settings.max_daily_drawdown,
            )
            return False
        if open_positions >= settings.max_positions:
            logger.debug(
                "Entry refused: %d open positions (max %d)",
                open_positions, settings.max_positions,
            )
            return False
        return True

    def calculate_stop_loss(
        self,
        entry_price: float,
        is_long: bool,
        atr: float,
    ) -> float:
        """Place the stop ``atr × atr_multiplier`` beyond entry.

        - **Long**:  SL = entry − ATR × multiplier
        - **Short**: SL = entry + ATR × multiplier
        """
        stop_distance = atr * self.settings.atr_multiplier
        if is_long:
            return entry_price - stop_distance
        return entry_price + stop_distance

    def calculate_take_profit(
        self,
        entry_price: float,
        stop_loss: float,
        is_long: bool,
    ) -> float:
        """Place the target ``risk_reward_ratio`` stop distances from entry."""
        stop_distance = abs(entry_price - stop_loss)
        profit_distance = stop_distance * self.settings.risk_reward_ratio
        if is_long:
            return entry_price + profit_distance
        return entry_price - profit_distance
