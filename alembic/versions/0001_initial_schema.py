"""Initial Twilight schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def _user_fk(name: str = "user_id", *, primary_key: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.BigInteger(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=primary_key,
        nullable=False,
    )


def upgrade() -> None:
    """Create every table used by the streak, reward, quest, trade,
    social, badge and settings services."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, server_default=""),
        sa.Column("avatar_hash", sa.String(100), nullable=True),
        sa.Column("total_voice_minutes", sa.Integer(), server_default="0"),
        sa.Column("total_messages", sa.Integer(), server_default="0"),
        sa.Column("respect", sa.Integer(), server_default="0"),
        sa.Column("gems", sa.Integer(), server_default="0"),
        sa.Column("streak_count", sa.Integer(), server_default="0"),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_users_gems", "users", ["gems"])

    op.create_table(
        "activity_streaks",
        _user_fk(primary_key=True),
        sa.Column("current_streak", sa.Integer(), server_default="0"),
        sa.Column("longest_streak", sa.Integer(), server_default="0"),
        sa.Column("last_activity_date", sa.String(10), nullable=True),
        sa.Column("today_voice_minutes", sa.Integer(), server_default="0"),
        sa.Column("today_messages", sa.Integer(), server_default="0"),
        sa.Column("streak_qualified_today", sa.Boolean(), server_default=sa.false()),
        sa.Column("total_streak_days", sa.Integer(), server_default="0"),
    )
    op.create_index(
        "ix_activity_streaks_current", "activity_streaks", ["current_streak", "longest_streak"],
    )

    op.create_table(
        "daily_rewards",
        _user_fk(primary_key=True),
        sa.Column("current_streak", sa.Integer(), server_default="0"),
        sa.Column("last_claim_date", sa.String(10), nullable=True),
        sa.Column("total_claims", sa.Integer(), server_default="0"),
        sa.Column("next_milestone", sa.Integer(), nullable=True, server_default="7"),
    )

    op.create_table(
        "reward_claims",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk(),
        sa.Column("claim_date", sa.String(10), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("reward_type", sa.String(20), nullable=False, server_default="daily"),
        sa.Column("gems", sa.Integer(), server_default="0"),
        sa.Column("respect", sa.Integer(), server_default="0"),
        _created_at("claimed_at"),
        sa.UniqueConstraint("user_id", "claim_date", name="uq_reward_claims_user_date"),
    )

    op.create_table(
        "quests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("quest_type", sa.String(10), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("requirement_type", sa.String(20), nullable=False),
        sa.Column("requirement_value", sa.Integer(), nullable=False),
        sa.Column("reward_gems", sa.Integer(), server_default="0"),
        sa.Column("reward_respect", sa.Integer(), server_default="0"),
        sa.Column("start_date", sa.String(10), nullable=False),
        sa.Column("end_date", sa.String(10), nullable=False),
        sa.Column("is_weekly", sa.Boolean(), server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("start_date", "is_weekly", "name", name="uq_quests_period_name"),
    )
    op.create_index("ix_quests_window", "quests", ["start_date", "end_date"])

    op.create_table(
        "user_quests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk(),
        sa.Column(
            "quest_id", sa.Integer(),
            sa.ForeignKey("quests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("progress", sa.Integer(), server_default="0"),
        sa.Column("completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("claimed", sa.Boolean(), server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "quest_id", name="uq_user_quests_user_quest"),
    )

    op.create_table(
        "trades",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("sender_id"),
        _user_fk("receiver_id"),
        sa.Column("offer_type", sa.String(20), nullable=False),
        sa.Column("offer_value", sa.Integer(), nullable=False),
        sa.Column("request_type", sa.String(20), nullable=False),
        sa.Column("request_value", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_trades_receiver_status", "trades", ["receiver_id", "status"])
    op.create_index("ix_trades_sender", "trades", ["sender_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk(),
        sa.Column("transaction_type", sa.String(30), nullable=False),
        sa.Column("currency", sa.String(20), nullable=False, server_default="gems"),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_transactions_user_time", "transactions", ["user_id", "created_at"])

    op.create_table(
        "friends",
        _user_fk(primary_key=True),
        _user_fk("friend_id", primary_key=True),
        _created_at(),
    )

    op.create_table(
        "respect_given",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("giver_id", sa.BigInteger(), nullable=False),
        sa.Column("receiver_id", sa.BigInteger(), nullable=False),
        sa.Column("given_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_respect_given_pair_time", "respect_given", ["giver_id", "receiver_id", "given_at"],
    )

    op.create_table(
        "respect_transfers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sender_id", sa.BigInteger(), nullable=False),
        sa.Column("receiver_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("transfer_date", sa.String(10), nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_respect_transfers_sender_date", "respect_transfers", ["sender_id", "transfer_date"],
    )

    op.create_table(
        "voice_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk(),
        sa.Column("channel_id", sa.BigInteger(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("left_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default="0"),
    )
    op.create_index("ix_voice_sessions_user", "voice_sessions", ["user_id", "joined_at"])

    op.create_table(
        "user_badges",
        _user_fk(primary_key=True),
        sa.Column("badge_id", sa.String(50), primary_key=True),
        _created_at("earned_at"),
    )

    op.create_table(
        "user_achievements",
        _user_fk(primary_key=True),
        sa.Column("achievement_id", sa.String(50), primary_key=True),
        _created_at("unlocked_at"),
    )

    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.BigInteger(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100), nullable=True),
        sa.Column("before_snapshot", sa.JSON(), nullable=True),
        sa.Column("after_snapshot", sa.JSON(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        _created_at("timestamp"),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index("ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at("updated_at"),
        sa.Column("updated_by", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    """Drop every Twilight table, dependents first."""
    for table in (
        "settings",
        "admin_log",
        "user_achievements",
        "user_badges",
        "voice_sessions",
        "respect_transfers",
        "respect_given",
        "friends",
        "transactions",
        "trades",
        "user_quests",
        "quests",
        "reward_claims",
        "daily_rewards",
        "activity_streaks",
        "users",
    ):
        op.drop_table(table)
