"""Engine configuration — the key/value parameter bag and typed settings.

Engines are initialised with one of the typed ``*Settings`` records below.
``EngineParameters`` is kept for hosts that compose engines by key name;
``Settings.from_parameters(bag)`` reads only the keys matching the
settings' field names and falls back to the field defaults otherwise.
"""

from dataclasses import MISSING, dataclass, fields
from typing import Any, Optional

from skycore.models import RecoveryMode


class EngineParameters:
    """Named-value bag handed to an engine at initialisation.

    Lookups are type-checked against the default: a stored value is
    returned only when it is an instance of the default's type.  Ints
    are accepted where floats are expected; bools never count as numbers.
    """

    def __init__(self, **values: Any) -> None:
        self._values: dict[str, Any] = dict(values)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default*.

        The default is also returned when the stored value does not match
        the default's type.  With a ``None`` default any stored value is
        returned as-is.
        """
        if key not in self._values:
            return default
        if default is None:
            return self._values[key]
        found, value = self.try_get(key, type(default))
        return value if found else default

    def try_get(self, key: str, expected: type) -> tuple[bool, Any]:
        """Return ``(True, value)`` if *key* holds an *expected* value."""
        if key not in self._values:
            return False, None
        value = self._values[key]
        if isinstance(value, bool) and expected is not bool:
            return False, None
        if expected is float and isinstance(value, int):
            return True, float(value)
        if isinstance(value, expected):
            return True, value
        return False, None


@dataclass(frozen=True)
class EngineSettings:
    """Base of the typed settings records; buildable from a parameter bag."""

    @classmethod
    def from_parameters(cls, parameters: Optional[EngineParameters] = None):
        if parameters is None:
            return cls()
        values = {}
        for f in fields(cls):
            if f.default is MISSING:
                continue
            values[f.name] = parameters.get(f.name, f.default)
        return cls(**values)


# ── Typed settings, one record per engine ────────────────────────────────


@dataclass(frozen=True)
class SignalSettings(EngineSettings):
    """The default signal engine reads no options."""


@dataclass(frozen=True)
class RiskSettings(EngineSettings):
    """Risk engine options.

    Attributes:
        max_risk_per_trade: Fraction of balance risked per trade (0.02 = 2 %).
        max_daily_drawdown: Drawdown fraction at which new entries stop.
        max_positions: Maximum concurrently open positions.
        atr_multiplier: Stop distance in ATRs.
        risk_reward_ratio: Take-profit distance as a multiple of stop distance.
    """

    max_risk_per_trade: float = 0.02
    max_daily_drawdown: float = 0.05
    max_positions: int = 3
    atr_multiplier: float = 2.0
    risk_reward_ratio: float = 2.0


@dataclass(frozen=True)
class RecoverySettings(EngineSettings):
    """Recovery engine options."""

    max_consecutive_losses: int = 3
    mode: RecoveryMode = RecoveryMode.REDUCE_SIZE


@dataclass(frozen=True)
class RangeSettings(EngineSettings):
    """Range detector options.

    Attributes:
        range_tolerance: Max (high − low) / midpoint for a ranging market.
        min_bars_in_range: Bars required before any range verdict.
    """

    range_tolerance: float = 0.02
    min_bars_in_range: int = 10
