"""
twilight.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for **infrastructure-only** settings (Discord
identity, API port, admin role, task intervals).  Gameplay tuning such as
streak thresholds and milestone payouts lives in the ``settings`` database
table and is exposed through :class:`~twilight.engine.cache.SettingsCache`.

Usage::

    from twilight.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "Twilight"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure/identity only.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TwilightConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str
    community_motto: str

    # Discord
    bot_prefix: str
    guild_id: int

    # Optional
    announce_channel_id: int | None = None
    quest_poll_seconds: int = 60
    top_badge_refresh_minutes: int = 60
    settings_reload_minutes: int = 5


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TwilightConfig:
    """Read *path* and return a :class:`TwilightConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return TwilightConfig(
        community_name=raw["community_name"],
        community_motto=raw.get("community_motto", ""),
        bot_prefix=raw.get("bot_prefix", "!"),
        guild_id=int(raw["guild_id"]),
        announce_channel_id=(
            int(raw["announce_channel_id"]) if raw.get("announce_channel_id") else None
        ),
        quest_poll_seconds=int(raw.get("quest_poll_seconds", 60)),
        top_badge_refresh_minutes=int(raw.get("top_badge_refresh_minutes", 60)),
        settings_reload_minutes=int(raw.get("settings_reload_minutes", 5)),
    )
