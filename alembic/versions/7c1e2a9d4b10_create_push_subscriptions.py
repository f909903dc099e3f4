"""create push_subscriptions

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-18 09:12:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c1e2a9d4b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "push_subscriptions",
    sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
    sa.Column("user_id", sa.Text(), nullable=False),
    sa.Column("endpoint", sa.Text(), nullable=False),
    sa.Column("p256dh_key", sa.Text(), nullable=False),
    sa.Column("auth_key", sa.Text(), nullable=False),
    sa.Column("user_agent", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
  )
  op.create_index("ix_push_subscriptions_user_id", "push_subscriptions", ["user_id"])
  # One row per endpoint; browsers re-register the same endpoint on key rotation.
  op.create_index("ux_push_subscriptions_endpoint", "push_subscriptions", ["endpoint"], unique=True)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ux_push_subscriptions_endpoint", table_name="push_subscriptions")
  op.drop_index("ix_push_subscriptions_user_id", table_name="push_subscriptions")
  op.drop_table("push_subscriptions")
