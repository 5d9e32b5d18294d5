"""
twilight.bot.__main__ — Entry point for ``python -m twilight.bot``
==================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine, ensure tables exist, seed settings.
4. Build and warm the SettingsCache.
5. Create the TwilightBot and hand it config + engine + cache.
6. Start the bot (blocking — runs the asyncio event loop).
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from twilight.bot.core import TwilightBot
from twilight.config import load_config
from twilight.database.engine import create_db_engine, init_db
from twilight.engine.cache import SettingsCache

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("twilight")


def main() -> None:
    """Bootstrap and run the Twilight bot."""
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    cfg = load_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    engine = create_db_engine()
    init_db(engine)

    cache = SettingsCache(engine)
    cache.load_all()

    bot = TwilightBot(cfg=cfg, engine=engine, cache=cache)

    logger.info("Starting Twilight bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
