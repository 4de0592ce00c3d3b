"""Signal engine — entry/exit extension point.

The bundled engine never signals.  Concrete strategies subclass
``SignalEngine`` (or satisfy ``EngineProtocol`` with the ``SIGNAL``
capability) and override ``analyze_entry`` / ``analyze_exit``.
"""

from typing import Optional

from skycore.engines.base import BaseEngine, Capability
from skycore.engines.parameters import SignalSettings
from skycore.models import MarketData, SignalResult


class SignalEngine(BaseEngine):
    """No-op signal source."""

    name = "SignalEngine"
    capabilities = frozenset({Capability.SIGNAL})
    settings_class = SignalSettings

    def analyze_entry(self, market: Optional[MarketData] = None) -> SignalResult:
        """Return an entry signal for *market*; the default has none."""
        return SignalResult()

    def analyze_exit(self, market: Optional[MarketData] = None) -> SignalResult:
        """Return an exit signal for *market*; the default has none."""
        return SignalResult()
