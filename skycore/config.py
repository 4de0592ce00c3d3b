"""SkyCore — bot configuration.

Loads .env variables into a typed config object.  Every option has a
default; a variable that is set but unparseable is rejected on load.
"""

import os
from dataclasses import dataclass
from typing import Callable

from dotenv import load_dotenv

from skycore.engines.parameters import RangeSettings, RecoverySettings, RiskSettings
from skycore.models import RecoveryMode


@dataclass(frozen=True)
class BotConfig:
    """Typed configuration record for one bot.

    Ratios are fractions (0.02 = 2 %).
    """

    initial_capital: float = 10_000.0
    max_risk_per_trade: float = 0.02
    max_daily_drawdown: float = 0.05
    max_positions: int = 3
    atr_multiplier: float = 2.0
    risk_reward_ratio: float = 2.0
    max_consecutive_losses: int = 3
    recovery_mode: RecoveryMode = RecoveryMode.REDUCE_SIZE
    range_tolerance: float = 0.02
    min_bars_in_range: int = 10
    avoid_ranging_markets: bool = True
    bot_name: str = "SkyCoreAtlas"
    signal_engine: str = "none"  # signal engine registry key
    log_level: str = "INFO"

    def risk_settings(self) -> RiskSettings:
        return RiskSettings(
            max_risk_per_trade=self.max_risk_per_trade,
            max_daily_drawdown=self.max_daily_drawdown,
            max_positions=self.max_positions,
            atr_multiplier=self.atr_multiplier,
            risk_reward_ratio=self.risk_reward_ratio,
        )

    def recovery_settings(self) -> RecoverySettings:
        return RecoverySettings(
            max_consecutive_losses=self.max_consecutive_losses,
            mode=self.recovery_mode,
        )

    def range_settings(self) -> RangeSettings:
        return RangeSettings(
            range_tolerance=self.range_tolerance,
            min_bars_in_range=self.min_bars_in_range,
        )


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


# env var → (field name, parser)
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], object]]] = {
    "INITIAL_CAPITAL": ("initial_capital", float),
    "MAX_RISK_PER_TRADE": ("max_risk_per_trade", float),
    "MAX_DAILY_DRAWDOWN": ("max_daily_drawdown", float),
    "MAX_POSITIONS": ("max_positions", int),
    "ATR_MULTIPLIER": ("atr_multiplier", float),
    "RISK_REWARD_RATIO": ("risk_reward_ratio", float),
    "MAX_CONSECUTIVE_LOSSES": ("max_consecutive_losses", int),
    "RECOVERY_MODE": ("recovery_mode", lambda raw: RecoveryMode(raw.strip().lower())),
    "RANGE_TOLERANCE": ("range_tolerance", float),
    "MIN_BARS_IN_RANGE": ("min_bars_in_range", int),
    "AVOID_RANGING_MARKETS": ("avoid_ranging_markets", _parse_bool),
    "BOT_NAME": ("bot_name", str),
    "SIGNAL_ENGINE": ("signal_engine", str),
    "LOG_LEVEL": ("log_level", str),
}


def load_config(env_path: str | None = None) -> BotConfig:
    """Load configuration from environment variables.

    Unset variables fall back to the ``BotConfig`` defaults.  Raises
    ``ValueError`` naming the variable when a set value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    values: dict[str, object] = {}
    for var, (field_name, parse) in _ENV_FIELDS.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            values[field_name] = parse(raw)
        except ValueError:
            raise ValueError(
                f"Invalid value for environment variable {var}: {raw!r}"
            ) from None

    return BotConfig(**values)
