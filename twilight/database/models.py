"""
twilight.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- users              — Community member profiles (Discord snowflake PK)
- activity_streaks   — Per-user daily qualification state (Streak Engine)
- daily_rewards      — Per-user daily claim state (Daily Reward Engine)
- reward_claims      — Append-only daily claim journal
- quests             — Generated daily/weekly quest instances
- user_quests        — Per-user quest progress
- trades             — Peer-to-peer currency exchange offers
- transactions       — Append-only audit of every balance mutation
- friends            — Directed friendship rows (written both ways)
- respect_given      — Respect gift journal (cooldown source)
- respect_transfers  — Respect transfer journal (daily limit source)
- voice_sessions     — Completed voice channel sessions
- user_badges        — Earned badges
- user_achievements  — Unlocked achievements
- settings           — Key/value gameplay tuning
- admin_log          — Append-only audit trail of settings changes

Calendar days are stored as ``YYYY-MM-DD`` strings; see
:mod:`twilight.engine.calendar`.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Twilight ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TradeStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class QuestRequirement(enum.StrEnum):
    """What a quest counts toward its ``requirement_value``."""
    VOICE = "voice"
    MESSAGES = "messages"
    RESPECT = "respect"
    FRIENDS = "friends"
    STREAK = "streak"


class AdminActionType(enum.StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"


# ---------------------------------------------------------------------------
# Users — one row per Discord member
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    avatar_hash: Mapped[str | None] = mapped_column(String(100), default=None)
    total_voice_minutes: Mapped[int] = mapped_column(Integer, default=0)
    total_messages: Mapped[int] = mapped_column(Integer, default=0)
    respect: Mapped[int] = mapped_column(Integer, default=0)
    gems: Mapped[int] = mapped_column(Integer, default=0)
    streak_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    streak: Mapped[ActivityStreak | None] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    daily_reward: Mapped[DailyRewardRecord | None] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_users_gems", "gems"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.username!r} gems={self.gems}>"


# ---------------------------------------------------------------------------
# ActivityStreak — owned by the Streak Engine
# ---------------------------------------------------------------------------
class ActivityStreak(Base):
    __tablename__ = "activity_streaks"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_date: Mapped[str | None] = mapped_column(String(10), default=None)
    today_voice_minutes: Mapped[int] = mapped_column(Integer, default=0)
    today_messages: Mapped[int] = mapped_column(Integer, default=0)
    streak_qualified_today: Mapped[bool] = mapped_column(Boolean, default=False)
    total_streak_days: Mapped[int] = mapped_column(Integer, default=0)

    user: Mapped[User] = relationship(back_populates="streak")

    __table_args__ = (
        Index("ix_activity_streaks_current", "current_streak", "longest_streak"),
    )

    def __repr__(self) -> str:
        return (
            f"<ActivityStreak user={self.user_id} current={self.current_streak} "
            f"last={self.last_activity_date}>"
        )


# ---------------------------------------------------------------------------
# DailyRewardRecord — owned by the Daily Reward Engine
# ---------------------------------------------------------------------------
class DailyRewardRecord(Base):
    __tablename__ = "daily_rewards"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_claim_date: Mapped[str | None] = mapped_column(String(10), default=None)
    total_claims: Mapped[int] = mapped_column(Integer, default=0)
    next_milestone: Mapped[int | None] = mapped_column(Integer, default=7)

    user: Mapped[User] = relationship(back_populates="daily_reward")

    def __repr__(self) -> str:
        return (
            f"<DailyRewardRecord user={self.user_id} streak={self.current_streak} "
            f"last={self.last_claim_date}>"
        )


class RewardClaim(Base):
    """One row per successful daily claim.  Never updated."""
    __tablename__ = "reward_claims"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    claim_date: Mapped[str] = mapped_column(String(10), nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(20), nullable=False, default="daily")
    gems: Mapped[int] = mapped_column(Integer, default=0)
    respect: Mapped[int] = mapped_column(Integer, default=0)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "claim_date", name="uq_reward_claims_user_date"),
    )

    def __repr__(self) -> str:
        return f"<RewardClaim user={self.user_id} date={self.claim_date} day={self.day_number}>"


# ---------------------------------------------------------------------------
# Quests
# ---------------------------------------------------------------------------
class Quest(Base):
    """A generated quest instance, valid on ``[start_date, end_date)``."""
    __tablename__ = "quests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quest_type: Mapped[str] = mapped_column(String(10), nullable=False)  # daily | weekly
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requirement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    requirement_value: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_gems: Mapped[int] = mapped_column(Integer, default=0)
    reward_respect: Mapped[int] = mapped_column(Integer, default=0)
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)
    is_weekly: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("start_date", "is_weekly", "name", name="uq_quests_period_name"),
        Index("ix_quests_window", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Quest id={self.id} name={self.name!r} start={self.start_date}>"


class UserQuest(Base):
    __tablename__ = "user_quests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    quest_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quests.id", ondelete="CASCADE"), nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    claimed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    quest: Mapped[Quest] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", name="uq_user_quests_user_quest"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserQuest user={self.user_id} quest={self.quest_id} "
            f"progress={self.progress} completed={self.completed}>"
        )


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------
class Trade(Base):
    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    offer_type: Mapped[str] = mapped_column(String(20), nullable=False)
    offer_value: Mapped[int] = mapped_column(Integer, nullable=False)
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)
    request_value: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TradeStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_trades_receiver_status", "receiver_id", "status"),
        Index("ix_trades_sender", "sender_id"),
    )

    def __repr__(self) -> str:
        return f"<Trade id={self.id} {self.sender_id}→{self.receiver_id} status={self.status}>"


# ---------------------------------------------------------------------------
# Transactions — append-only balance audit
# ---------------------------------------------------------------------------
class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    currency: Mapped[str] = mapped_column(String(20), nullable=False, default="gems")
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_transactions_user_time", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction user={self.user_id} type={self.transaction_type} "
            f"{self.amount:+d} {self.currency}>"
        )


# ---------------------------------------------------------------------------
# Social graph
# ---------------------------------------------------------------------------
class Friendship(Base):
    """Directed edge.  Every friendship is stored as two rows."""
    __tablename__ = "friends"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    friend_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Friendship {self.user_id}→{self.friend_id}>"


class RespectGiven(Base):
    __tablename__ = "respect_given"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    giver_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    receiver_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    given_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_respect_given_pair_time", "giver_id", "receiver_id", "given_at"),
    )


class RespectTransfer(Base):
    __tablename__ = "respect_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    receiver_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    transfer_date: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_respect_transfers_sender_date", "sender_id", "transfer_date"),
    )


# ---------------------------------------------------------------------------
# VoiceSession — completed voice channel presence
# ---------------------------------------------------------------------------
class VoiceSession(Base):
    __tablename__ = "voice_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    left_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index("ix_voice_sessions_user", "user_id", "joined_at"),
    )


# ---------------------------------------------------------------------------
# Badges & achievements — one-time unlocks, catalogues live in code
# ---------------------------------------------------------------------------
class UserBadge(Base):
    __tablename__ = "user_badges"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    badge_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<UserBadge user={self.user_id} badge={self.badge_id}>"


class UserAchievement(Base):
    __tablename__ = "user_achievements"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    achievement_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<UserAchievement user={self.user_id} achievement={self.achievement_id}>"


# ---------------------------------------------------------------------------
# AdminLog — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id} action={self.action_type}>"


# ---------------------------------------------------------------------------
# Settings — key/value gameplay tuning
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Streak thresholds and milestone payouts live here so admins can adjust
    them without redeploying.  Values are stored as JSON strings; the typed
    view lives in :class:`~twilight.engine.cache.SettingsCache`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    updated_by: Mapped[int | None] = mapped_column(BigInteger, default=None)

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
