"""
twilight.bot.cogs.tasks — Periodic Background Tasks
====================================================

Scheduled jobs that run on ``discord.ext.tasks`` loops:

- **Quest generation** — every ``quest_poll_seconds`` (default 60);
  creates today's daily set and this week's weekly set if missing.
- **Settings reload** — every ``settings_reload_minutes`` (default 5);
  picks up streak settings changed through the API process.
- **Top badge refresh** — every ``top_badge_refresh_minutes``
  (default 60); keeps ``top_10`` in sync with the activity ranking.

All work runs through ``run_db()`` so the event loop is never blocked.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from twilight.database.engine import run_db
from twilight.services.badge_service import refresh_top_badges
from twilight.services.quest_service import ensure_quests

if TYPE_CHECKING:
    from twilight.bot.core import TwilightBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled background tasks."""

    def __init__(self, bot: TwilightBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        cfg = self.bot.cfg
        self.quest_loop.change_interval(seconds=cfg.quest_poll_seconds)
        self.settings_loop.change_interval(minutes=cfg.settings_reload_minutes)
        self.top_badge_loop.change_interval(minutes=cfg.top_badge_refresh_minutes)
        self.quest_loop.start()
        self.settings_loop.start()
        self.top_badge_loop.start()

    async def cog_unload(self) -> None:
        self.quest_loop.cancel()
        self.settings_loop.cancel()
        self.top_badge_loop.cancel()

    # -------------------------------------------------------------------
    # Quest generation
    # -------------------------------------------------------------------
    @tasks.loop(seconds=60)
    async def quest_loop(self):
        """Generate the current daily/weekly quest sets if they are missing."""
        try:
            created = await run_db(ensure_quests, self.bot.engine)
            if created["daily"] or created["weekly"]:
                logger.info(
                    "Quest task: %d daily, %d weekly quests created",
                    created["daily"], created["weekly"],
                )
        except Exception:
            logger.exception("Quest generation failed", extra={"task": "quests"})

    # -------------------------------------------------------------------
    # Settings reload
    # -------------------------------------------------------------------
    @tasks.loop(minutes=5)
    async def settings_loop(self):
        try:
            await run_db(self.bot.cache.reload)
        except Exception:
            logger.exception("Settings reload failed", extra={"task": "settings"})

    @settings_loop.before_loop
    async def _wait_settings(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Top-10 badge
    # -------------------------------------------------------------------
    @tasks.loop(minutes=60)
    async def top_badge_loop(self):
        try:
            result = await run_db(refresh_top_badges, self.bot.engine)
            logger.debug("Top badge task: %s", result)
        except Exception:
            logger.exception("Top badge refresh failed", extra={"task": "top_badges"})

    @top_badge_loop.before_loop
    async def _wait_top_badge(self):
        await self.bot.wait_until_ready()


async def setup(bot: TwilightBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
