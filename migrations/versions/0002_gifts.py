"""gift planning

Revision ID: 0002_gifts
Revises: 0001_init
Create Date: 2026-10-08
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_gifts"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "gifts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id", ondelete="cascade"), nullable=False),
        sa.Column("gift_name", sa.String(length=128), nullable=False),
        sa.Column("recipient_name", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False, server_default="other"),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("purchased", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_gifts_amount_positive"),
    )
    op.create_index("ix_gifts_user_event_date", "gifts", ["user_id", "event_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_gifts_user_event_date", table_name="gifts")
    op.drop_table("gifts")
