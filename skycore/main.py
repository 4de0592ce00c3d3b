"""SkyCore — reporting application.

Exposes the read-only reporting API for a bot hosted by an execution
platform, plus the logging setup hosts share.
"""

import logging

from fastapi import FastAPI

from skycore.api.routers import configure_routers, router
from skycore.bot_core import BotCore
from skycore.config import BotConfig

app = FastAPI(title="SkyCore Reporting API", version="1.0.0")
app.include_router(router)

logger = logging.getLogger("skycore")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@app.get("/health")
async def health():
    return {"status": "ok"}


def configure_logging(level: str = "INFO") -> None:
    """Apply the standard SkyCore log format at *level*."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def create_bot(config: BotConfig) -> BotCore:
    """Configure logging, build the standard bot and bind the reporting API.

    The bot is returned unstarted; the host calls ``start()``.
    """
    configure_logging(config.log_level)
    bot = BotCore.from_config(config)
    configure_routers(bot)
    logger.info("Built %s with signal engine '%s'", bot.bot_name, config.signal_engine)
    return bot
