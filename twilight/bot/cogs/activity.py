"""
twilight.bot.cogs.activity — Message & Voice Activity Ingest
=============================================================

Feeds gateway events into :mod:`twilight.services.activity_service`:

- ``on_message`` → :func:`record_message`
- ``on_voice_state_update`` → join / move / leave on the bot's
  :class:`VoiceSessionStore`; every closed segment is credited through
  :func:`record_voice_session`.

Streak qualifications and milestones are announced in the configured
announcement channel when one is set.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from twilight.constants import FIRE_EMOJI, GEM_EMOJI
from twilight.database.engine import run_db
from twilight.services.activity_service import (
    ClosedSession,
    record_message,
    record_voice_session,
)

if TYPE_CHECKING:
    from twilight.bot.core import TwilightBot

logger = logging.getLogger(__name__)


class Activity(commands.Cog, name="Activity"):
    """Tracks messages and voice presence for streaks, quests and badges."""

    def __init__(self, bot: TwilightBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return
        try:
            result = await run_db(
                record_message,
                self.bot.engine,
                self.bot.cache,
                message.author.id,
                message.author.name,
            )
            await self._announce(message.author, result)
        except Exception:
            logger.exception("Error processing message from user %s", message.author.id)

    # -------------------------------------------------------------------
    # Voice
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        if member.bot:
            return
        try:
            await self._handle_voice_update(member, before, after)
        except Exception:
            logger.exception("Error processing voice state update for user %s", member.id)

    async def _handle_voice_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        store = self.bot.voice_sessions
        closed: ClosedSession | None = None

        # --- Join ---
        if before.channel is None and after.channel is not None:
            store.start(member.id, after.channel.id)
            logger.debug("%s joined voice channel %s", member, after.channel)

        # --- Leave ---
        elif before.channel is not None and after.channel is None:
            closed = store.end(member.id)
            logger.debug("%s left voice channel %s", member, before.channel)

        # --- Move ---
        elif (
            before.channel is not None
            and after.channel is not None
            and before.channel.id != after.channel.id
        ):
            closed = store.move(member.id, after.channel.id)
            logger.debug("%s moved voice %s → %s", member, before.channel, after.channel)

        if closed is None:
            return

        logger.info("%s finished a %d-minute voice segment", member, closed.minutes)
        result = await run_db(
            record_voice_session, self.bot.engine, self.bot.cache, closed, member.name,
        )
        await self._announce(member, result)

    # -------------------------------------------------------------------
    # Announcements
    # -------------------------------------------------------------------
    async def _announce(self, member: discord.abc.User, result: dict) -> None:
        channel_id = self.bot.cfg.announce_channel_id
        if not channel_id or not (result.get("qualified") or result.get("milestone_day")):
            return
        channel = self.bot.get_channel(channel_id)
        if not isinstance(channel, discord.TextChannel):
            return

        lines = []
        if result.get("qualified"):
            lines.append(
                f"{FIRE_EMOJI} **{member.display_name}** kept their streak alive today! "
                f"(+{result.get('reward', 0)} {GEM_EMOJI})"
            )
        if result.get("milestone_day"):
            lines.append(
                f"\U0001f389 {result['milestone_day']}-day milestone reached: "
                f"+{result['milestone_reward']} {GEM_EMOJI}"
            )
        try:
            await channel.send("\n".join(lines))
        except discord.HTTPException:
            logger.warning("Could not post streak announcement to channel %s", channel_id)


async def setup(bot: TwilightBot) -> None:
    await bot.add_cog(Activity(bot))
