"""initial merit schema

Revision ID: 5b1f0c3a9e21
Revises:
Create Date: 2026-10-19 09:12:44.318250

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1f0c3a9e21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    """Create users, communities, ledgers and publication tables."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("global_role", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "community",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type_tag", sa.Text(), nullable=False),
        sa.Column("voting_rules", sa.JSON(), nullable=True),
        sa.Column("posting_rules", sa.JSON(), nullable=True),
        sa.Column("permission_rules", sa.JSON(), nullable=True),
        sa.Column("merit_settings", sa.JSON(), nullable=True),
        sa.Column("tappalka_settings", sa.JSON(), nullable=True),
        sa.Column("investing_settings", sa.JSON(), nullable=True),
        sa.Column("last_quota_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("needs_setup", sa.Boolean(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "user_community_role",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "community_id"),
    )
    op.create_index(
        "ix_user_community_role_community_id",
        "user_community_role",
        ["community_id"],
    )
    op.create_table(
        "quota_usage",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("amount_quota", sa.Float(), nullable=False),
        sa.Column("usage_type", sa.Text(), nullable=False),
        sa.Column("reference_id", sa.Text(), nullable=False),
        _created_at(),
        sa.CheckConstraint("amount_quota > 0", name="ck_quota_usage_amount_positive"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_quota_usage_user_community_created",
        "quota_usage",
        ["user_id", "community_id", "created_at"],
    )
    op.create_table(
        "wallet",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("balance", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "community_id"),
    )
    op.create_table(
        "wallet_transaction",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("reference_type", sa.Text(), nullable=False),
        sa.Column("reference_id", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_wallet_transaction_user_community",
        "wallet_transaction",
        ["user_id", "community_id"],
    )
    op.create_table(
        "publication",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("beneficiary_id", sa.Text(), nullable=True),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("poll_options", sa.JSON(), nullable=True),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column("comment_count", sa.Integer(), nullable=False),
        sa.Column("deleted", sa.Boolean(), nullable=False),
        sa.Column("closed", sa.Boolean(), nullable=False),
        sa.Column("investing_enabled", sa.Boolean(), nullable=False),
        sa.Column("investor_share_percent", sa.Float(), nullable=False),
        sa.Column("stop_loss", sa.Float(), nullable=False),
        sa.Column("investment_ttl_days", sa.Integer(), nullable=True),
        sa.Column("investment_pool", sa.Float(), nullable=False),
        sa.Column("investment_pool_total", sa.Float(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["community_id"], ["community.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["beneficiary_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_publication_community_id", "publication", ["community_id"])
    op.create_table(
        "comment",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("publication_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column("reply_count", sa.Integer(), nullable=False),
        sa.Column("deleted", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["publication_id"], ["publication.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comment_publication_id", "comment", ["publication_id"])
    op.create_table(
        "poll_cast",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("poll_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("option_index", sa.Integer(), nullable=False),
        sa.Column("amount_quota", sa.Float(), nullable=False),
        sa.Column("amount_wallet", sa.Float(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["poll_id"], ["publication.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "investment",
        sa.Column("publication_id", sa.Text(), nullable=False),
        sa.Column("investor_id", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["publication_id"], ["publication.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["investor_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("publication_id", "investor_id"),
    )
    op.create_table(
        "vote",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("target_type", sa.Text(), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("amount_quota", sa.Float(), nullable=False),
        sa.Column("amount_wallet", sa.Float(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        _created_at(),
        sa.CheckConstraint("direction IN ('up', 'down')", name="ck_vote_direction"),
        sa.CheckConstraint(
            "amount_quota >= 0 AND amount_wallet >= 0",
            name="ck_vote_amounts_non_negative",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vote_target", "vote", ["target_type", "target_id"])
    op.create_index("ix_vote_user_community", "vote", ["user_id", "community_id"])
    op.create_table(
        "tappalka_progress",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("comparison_count", sa.Integer(), nullable=False),
        sa.Column("total_comparisons", sa.Integer(), nullable=False),
        sa.Column("total_rewards_earned", sa.Integer(), nullable=False),
        sa.Column("onboarding_seen", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "community_id"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("tappalka_progress")
    op.drop_index("ix_vote_user_community", table_name="vote")
    op.drop_index("ix_vote_target", table_name="vote")
    op.drop_table("vote")
    op.drop_table("investment")
    op.drop_table("poll_cast")
    op.drop_index("ix_comment_publication_id", table_name="comment")
    op.drop_table("comment")
    op.drop_index("ix_publication_community_id", table_name="publication")
    op.drop_table("publication")
    op.drop_index("ix_wallet_transaction_user_community", table_name="wallet_transaction")
    op.drop_table("wallet_transaction")
    op.drop_table("wallet")
    op.drop_index("ix_quota_usage_user_community_created", table_name="quota_usage")
    op.drop_table("quota_usage")
    op.drop_index("ix_user_community_role_community_id", table_name="user_community_role")
    op.drop_table("user_community_role")
    op.drop_table("community")
    op.drop_table("user_account")
