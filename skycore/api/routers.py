"""Reporting API routers — /status, /metrics, /recovery, /signals/last endpoints.

Read-only.  No business logic; every value comes from the injected
``BotCore``.
"""

import dataclasses
import logging
from typing import Optional

from fastapi import APIRouter

from skycore.bot_core import BotCore
from skycore.engines.base import Capability, describe_engine

logger = logging.getLogger("skycore.api")
router = APIRouter()

_bot: Optional[BotCore] = None  # Set via configure_routers()


def configure_routers(bot: Optional[BotCore]) -> None:
    """Inject the bot whose state the endpoints report."""
    global _bot  # noqa: PLW0603
    _bot = bot
    if bot is not None:
        logger.debug("Reporting API bound to %s", bot.bot_name)


def _no_bot() -> dict:
    return {"error": "No bot configured"}


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return bot identity, run state and installed engines."""
    if _bot is None:
        return _no_bot()
    return {
        "bot_name": _bot.bot_name,
        "version": _bot.version,
        "running": _bot.is_running,
        "bar_count": _bot.bar_count,
        "engines": [describe_engine(e) for e in _bot.engines],
    }


@router.get("/metrics")
async def get_metrics():
    """Return the session metrics summary."""
    if _bot is None:
        return _no_bot()
    return _bot.metrics.summary()


@router.get("/recovery")
async def get_recovery():
    """Return the recovery verdict for the current metrics."""
    if _bot is None:
        return _no_bot()
    if _bot.get_engine(Capability.RECOVERY) is None:
        return {"error": "No recovery engine installed"}
    status = _bot.recovery_status()
    if status is None:
        return {"error": "Bot not started"}
    return {
        "is_active": status.is_active,
        "mode": status.mode.value,
        "reason": status.reason,
        "position_size_multiplier": status.position_size_multiplier,
    }


@router.get("/signals/last")
async def get_last_signal():
    """Return the most recently emitted trade signal, if any."""
    if _bot is None:
        return _no_bot()
    signal = _bot.last_signal
    if signal is None:
        return {"signal": None}
    payload = dataclasses.asdict(signal)
    payload["signal_type"] = signal.signal_type.value
    return {"signal": payload}
