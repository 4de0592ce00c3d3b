"""Engine protocol and shared lifecycle.

Every engine exposes a name, a version, an ``enabled`` flag,
``initialize(settings)`` and ``validate()``.  Engines declare the
capability tags they satisfy so the bot can look them up without
inspecting concrete classes.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional, Protocol, Union, runtime_checkable

from skycore.engines.parameters import EngineParameters, EngineSettings


class Capability(str, Enum):
    """Decision roles an engine can fill inside the bot."""

    SIGNAL = "signal"
    RISK = "risk"
    RECOVERY = "recovery"
    RANGE_DETECTION = "range_detection"


@runtime_checkable
class EngineProtocol(Protocol):
    """Interface that all engines must satisfy."""

    name: str
    version: str
    enabled: bool
    capabilities: frozenset[Capability]

    def initialize(self, settings=None) -> None:
        """Store configuration; must run before any decision method."""
        ...

    def validate(self) -> bool:
        """Return ``True`` iff the engine is initialised and enabled."""
        ...


class BaseEngine:
    """Lifecycle shared by the bundled engines.

    Subclasses set ``name``, ``capabilities`` and ``settings_class``.
    ``initialize`` accepts an instance of ``settings_class``, an
    ``EngineParameters`` bag (converted with ``from_parameters``) or
    ``None`` for the defaults.  Until initialised, decision methods run
    on default settings but ``validate()`` reports ``False``.
    """

    name: ClassVar[str] = "BaseEngine"
    version: ClassVar[str] = "1.0.0"
    capabilities: ClassVar[frozenset[Capability]] = frozenset()
    settings_class: ClassVar[type[EngineSettings]] = EngineSettings

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._settings = None

    def initialize(
        self,
        settings: Union[EngineSettings, EngineParameters, None] = None,
    ) -> None:
        if settings is None:
            settings = self.settings_class()
        elif isinstance(settings, EngineParameters):
            settings = self.settings_class.from_parameters(settings)
        elif not isinstance(settings, self.settings_class):
            raise TypeError(
                f"{self.name} expects {self.settings_class.__name__} or "
                f"EngineParameters, got {type(settings).__name__}"
            )
        self._settings = settings

    def validate(self) -> bool:
        return self.is_initialized and self.enabled

    @property
    def is_initialized(self) -> bool:
        return self._settings is not None

    @property
    def settings(self):
        """Active settings (defaults before ``initialize``)."""
        if self._settings is None:
            return self.settings_class()
        return self._settings

    def __repr__(self) -> str:
        state = "enabled" if self.enabled else "disabled"
        return f"<{type(self).__name__} {self.name} v{self.version} {state}>"


def describe_engine(engine: EngineProtocol) -> dict:
    """Status view of an engine for logs and the reporting API."""
    caps: Optional[frozenset[Capability]] = getattr(engine, "capabilities", None)
    return {
        "name": engine.name,
        "version": engine.version,
        "enabled": engine.enabled,
        "capabilities": sorted(c.value for c in caps or ()),
    }
