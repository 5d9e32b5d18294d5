"""
Twilight — Community Gamification Backend for Discord
=======================================================
Tracks voice and message activity, pays out gems and respect through
activity streaks, daily rewards, quests and trades, and surfaces the
results through a REST API and a companion Discord bot.

Package layout::

    twilight/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Currencies, transaction types, presentation
    ├── errors.py          # Domain exceptions with machine-readable reasons
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default settings seeder
    ├── engine/
    │   ├── calendar.py    # Day keys + the single day-continuity rule
    │   ├── streaks.py     # Activity streak state machine (pure)
    │   ├── daily_rewards.py # Daily claim schedule + eligibility (pure)
    │   ├── quests.py      # Quest templates + generation windows (pure)
    │   ├── ledger.py      # Staged, validated balance plans (pure)
    │   ├── achievements.py # Badge / achievement evaluators (pure)
    │   └── cache.py       # Typed, hot-reloadable streak settings
    ├── services/          # Session-owning operations over the engines
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/          # Activity ingest, slash commands, periodic tasks
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
