"""Create sync tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("username", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("pwhash", sa.String(length=255), nullable=False),
        sa.Column("session_id", sa.String(length=32), nullable=True),
    )
    op.create_index("ix_users_session_id", "users", ["session_id"], unique=False)

    op.create_table(
        "devices",
        sa.Column("username", sa.String(length=255), sa.ForeignKey("users.username", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("id", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("caption", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("type", sa.String(length=20), server_default=sa.text("'other'"), nullable=False),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), sa.ForeignKey("users.username", ondelete="CASCADE"), nullable=False),
        sa.Column("device", sa.String(length=255), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("created", sa.BigInteger(), nullable=False),
        sa.Column("deleted", sa.BigInteger(), nullable=True),
        sa.UniqueConstraint("username", "device", "url", name="uq_subscriptions_username_device_url"),
    )
    op.create_index("ix_subscriptions_username_device", "subscriptions", ["username", "device"], unique=False)

    op.create_table(
        "episodes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), sa.ForeignKey("users.username", ondelete="CASCADE"), nullable=False),
        sa.Column("device", sa.String(length=255), nullable=True),
        sa.Column("podcast", sa.Text(), nullable=False),
        sa.Column("episode", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=False), nullable=True),
        sa.Column("guid", sa.Text(), nullable=True),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("started", sa.BigInteger(), nullable=True),
        sa.Column("position", sa.BigInteger(), nullable=True),
        sa.Column("total", sa.BigInteger(), nullable=True),
        sa.Column("modified", sa.BigInteger(), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("username", "podcast", "episode", name="uq_episodes_username_podcast_episode"),
    )
    op.create_index("ix_episodes_username_modified", "episodes", ["username", "modified"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_episodes_username_modified", table_name="episodes")
    op.drop_table("episodes")
    op.drop_index("ix_subscriptions_username_device", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("devices")
    op.drop_index("ix_users_session_id", table_name="users")
    op.drop_table("users")
