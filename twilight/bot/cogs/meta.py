"""
twilight.bot.cogs.meta — Streak, Daily Reward & Quest Commands
===============================================================

Hybrid commands for member self-service:
- /streak — Current activity streak and today's progress
- /daily — Claim today's daily reward
- /quests — Active daily and weekly quests with progress
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from twilight.constants import FIRE_EMOJI, GEM_EMOJI, RESPECT_EMOJI
from twilight.database.engine import run_db
from twilight.errors import TwilightError
from twilight.services.daily_reward_service import claim_daily_reward
from twilight.services.quest_service import get_available_quests
from twilight.services.streak_service import get_streak_status

if TYPE_CHECKING:
    from twilight.bot.core import TwilightBot

logger = logging.getLogger(__name__)

_BAR_WIDTH = 10


def progress_bar(value: int, target: int, width: int = _BAR_WIDTH) -> str:
    """Text progress bar, e.g. ``▰▰▰▱▱▱▱▱▱▱``."""
    if target <= 0:
        return "▰" * width
    filled = min(width, value * width // target)
    return "▰" * filled + "▱" * (width - filled)


class Meta(commands.Cog, name="Meta"):
    """Streak, daily reward and quest commands."""

    def __init__(self, bot: TwilightBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /streak
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="streak",
        description="View your (or another member's) activity streak.",
    )
    @app_commands.describe(member="The member to look up (defaults to you)")
    async def streak(self, ctx: commands.Context, member: discord.Member | None = None) -> None:
        target = member or ctx.author
        data = await run_db(get_streak_status, self.bot.engine, self.bot.cache, target.id)
        today = data["today_progress"]
        settings = data["settings"]

        embed = discord.Embed(
            title=f"{FIRE_EMOJI} {target.display_name}'s Streak",
            color=discord.Color.orange(),
        )
        embed.set_thumbnail(url=target.display_avatar.url)
        embed.add_field(name="Current", value=f"{data['current_streak']} days", inline=True)
        embed.add_field(name="Longest", value=f"{data['longest_streak']} days", inline=True)
        embed.add_field(
            name="Next milestone",
            value=f"Day {data['next_milestone']}" if data["next_milestone"] else "—",
            inline=True,
        )

        status = "✅ Qualified" if today["qualified"] else "⏳ In progress"
        embed.add_field(
            name=f"Today — {status}",
            value=(
                f"\U0001f3a4 {progress_bar(today['voice_minutes'], settings['required_voice_minutes'])} "
                f"{today['voice_minutes']}/{settings['required_voice_minutes']} min\n"
                f"\U0001f4ac {progress_bar(today['messages'], settings['required_messages'])} "
                f"{today['messages']}/{settings['required_messages']} msgs"
            ),
            inline=False,
        )
        embed.set_footer(text=self.bot.cfg.community_name)
        await ctx.send(embed=embed)

    # -------------------------------------------------------------------
    # /daily
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="daily",
        description="Claim today's daily reward.",
    )
    async def daily(self, ctx: commands.Context) -> None:
        try:
            result = await run_db(
                claim_daily_reward, self.bot.engine, ctx.author.id, username=ctx.author.name,
            )
        except TwilightError as exc:
            await ctx.send(f"❌ {exc}", ephemeral=True)
            return

        reward = result["reward"]
        embed = discord.Embed(
            title=f"\U0001f381 {reward['description']}",
            description=(
                f"**{ctx.author.display_name}** claimed "
                f"{reward['gems']} {GEM_EMOJI} and {reward['respect']} {RESPECT_EMOJI}"
            ),
            color=discord.Color.gold() if reward.get("special") else discord.Color.green(),
        )
        embed.add_field(name="Streak", value=f"Day {result['streak_day']}", inline=True)
        if result["next_milestone"]:
            embed.add_field(name="Next milestone", value=f"Day {result['next_milestone']}", inline=True)
        if result["streak_broken"]:
            embed.set_footer(text="Your previous claim streak was reset.")
        await ctx.send(embed=embed)

    # -------------------------------------------------------------------
    # /quests
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="quests",
        description="View today's quests and your progress.",
    )
    async def quests(self, ctx: commands.Context) -> None:
        rows = await run_db(get_available_quests, self.bot.engine, ctx.author.id)
        if not rows:
            await ctx.send("No quests are active right now. Check back soon!", ephemeral=True)
            return

        embed = discord.Embed(title="\U0001f3af Quests", color=discord.Color.blurple())
        for label, weekly in (("Daily", False), ("Weekly", True)):
            lines = []
            for q in (r for r in rows if r["is_weekly"] is weekly):
                if q["claimed"]:
                    mark = "\U0001f381"
                elif q["completed"]:
                    mark = "✅"
                else:
                    mark = "▫️"
                lines.append(
                    f"{mark} **{q['name']}** — {q['description']}\n"
                    f"{progress_bar(q['progress'], q['requirement_value'])} "
                    f"{q['progress']}/{q['requirement_value']} · "
                    f"{q['reward_gems']} {GEM_EMOJI} {q['reward_respect']} {RESPECT_EMOJI}"
                )
            if lines:
                embed.add_field(name=label, value="\n".join(lines), inline=False)
        await ctx.send(embed=embed)


async def setup(bot: TwilightBot) -> None:
    await bot.add_cog(Meta(bot))
