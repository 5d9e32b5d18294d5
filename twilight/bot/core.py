"""
twilight.bot.core — Bot Instance & Cog Loader
==============================================

:class:`TwilightBot` carries the shared config (``bot.cfg``), database
engine (``bot.engine``), settings cache (``bot.cache``) and the
in-memory :class:`~twilight.services.activity_service.VoiceSessionStore`
(``bot.voice_sessions``) so every Cog reaches them through ``self.bot``.

Slash commands are synced on startup: guild-scoped when ``DEV_GUILD_ID``
is set, global otherwise.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from twilight.config import TwilightConfig
from twilight.engine.cache import SettingsCache
from twilight.services.activity_service import VoiceSessionStore

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "twilight.bot.cogs.activity",
    "twilight.bot.cogs.meta",
    "twilight.bot.cogs.tasks",
]


class TwilightBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`TwilightConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine`.
    cache:
        A loaded :class:`SettingsCache`.
    """

    def __init__(self, cfg: TwilightConfig, engine: Engine, cache: SettingsCache) -> None:
        intents = discord.Intents.default()
        intents.message_content = False   # Message counts only
        intents.members = True            # Privileged: member cache for voice states
        intents.voice_states = True
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} — {cfg.community_motto}",
        )

        self.cfg = cfg
        self.engine = engine
        self.cache = cache
        self.voice_sessions = VoiceSessionStore()

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load every Cog extension.  A broken Cog is logged and skipped."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        self._resume_voice_sessions()

    def _resume_voice_sessions(self) -> None:
        """Start sessions for members already in voice when the bot connects."""
        guild = self.get_guild(self.cfg.guild_id)
        if guild is None:
            logger.warning("Primary guild %d not found — voice sessions not resumed", self.cfg.guild_id)
            return
        resumed = 0
        for vc in guild.voice_channels:
            for member in vc.members:
                if member.bot or member.id in self.voice_sessions:
                    continue
                self.voice_sessions.start(member.id, vc.id)
                resumed += 1
        if resumed:
            logger.info("Resumed %d in-progress voice sessions", resumed)

    async def close(self) -> None:
        logger.info("Bot shutting down… (%d open voice sessions dropped)", len(self.voice_sessions))
        await super().close()
