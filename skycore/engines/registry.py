"""Engine registry and signal-engine lookup.

``EngineRegistry`` maps identity keys to engine instances.  An engine is
stored under its concrete class and under every capability tag it
declares; the last registration under a key wins.

``SIGNAL_ENGINE_REGISTRY`` maps signal-engine names to classes so a
``BotConfig`` can select a strategy by key.
"""

from typing import Iterator, Optional, Union

from skycore.engines.base import Capability, EngineProtocol
from skycore.engines.signal import SignalEngine

EngineKey = Union[type, Capability]


class EngineRegistry:
    """Identity-keyed store of installed engines."""

    def __init__(self) -> None:
        self._engines: dict[EngineKey, EngineProtocol] = {}

    def register(self, engine: EngineProtocol) -> list[EngineKey]:
        """Store *engine* under its class and capability tags.

        Returns the keys written, in order.
        """
        keys: list[EngineKey] = [type(engine)]
        keys.extend(sorted(engine.capabilities, key=lambda c: c.value))
        for key in keys:
            self._engines[key] = engine
        return keys

    def get(self, key: EngineKey) -> Optional[EngineProtocol]:
        """Look up an engine by class or capability.

        Exact key match first; otherwise the first registered engine that
        is an instance of the class or declares the capability.  Returns
        ``None`` when nothing matches.
        """
        engine = self._engines.get(key)
        if engine is not None:
            return engine
        for candidate in self._engines.values():
            if isinstance(key, Capability):
                if key in candidate.capabilities:
                    return candidate
            elif isinstance(candidate, key):
                return candidate
        return None

    def __iter__(self) -> Iterator[EngineProtocol]:
        """Distinct registered engines, in first-registration order."""
        seen: set[int] = set()
        for engine in self._engines.values():
            if id(engine) not in seen:
                seen.add(id(engine))
                yield engine

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, key: EngineKey) -> bool:
        return self.get(key) is not None


# ── Signal engines by name ───────────────────────────────────────────────


SIGNAL_ENGINE_REGISTRY: dict[str, type] = {
    "none": SignalEngine,
}


def register_signal_engine(name: str, engine_class: type) -> None:
    """Make *engine_class* selectable as ``BotConfig.signal_engine``."""
    SIGNAL_ENGINE_REGISTRY[name] = engine_class


def get_signal_engine(name: str) -> EngineProtocol:
    """Look up and instantiate a signal engine by registry key.

    Raises ``KeyError`` if the name is not registered.
    """
    if name not in SIGNAL_ENGINE_REGISTRY:
        raise KeyError(
            f"Unknown signal engine '{name}'. "
            f"Available: {', '.join(SIGNAL_ENGINE_REGISTRY.keys())}"
        )
    return SIGNAL_ENGINE_REGISTRY[name]()
