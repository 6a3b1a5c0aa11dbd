"""Add reminder stamps and reminder notification types."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "reservations",
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column(
        "reservations",
        sa.Column("review_reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
    )

    conn = op.get_bind()
    if conn.dialect.name != "postgresql":
        return
    op.execute("ALTER TYPE notificationtype ADD VALUE IF NOT EXISTS 'BOOKING_REMINDER'")
    op.execute("ALTER TYPE notificationtype ADD VALUE IF NOT EXISTS 'REVIEW_REMINDER'")


def downgrade() -> None:
    op.drop_column("reservations", "review_reminder_sent_at")
    op.drop_column("reservations", "reminder_sent_at")

    conn = op.get_bind()
    if conn.dialect.name != "postgresql":
        return
    op.execute(
        "DELETE FROM notifications WHERE type IN ('BOOKING_REMINDER', 'REVIEW_REMINDER')"
    )
    op.execute("ALTER TYPE notificationtype RENAME TO notificationtype_old")
    op.execute(
        """
        CREATE TYPE notificationtype AS ENUM (
            'BOOKING_CREATED',
            'BOOKING_CONFIRMED',
            'BOOKING_CANCELLED',
            'BOOKING_COMPLETED',
            'PAYMENT_RECEIVED',
            'PAYMENT_FAILED',
            'REVIEW_RECEIVED'
        )
        """
    )
    op.execute(
        """
        ALTER TABLE notifications
        ALTER COLUMN type TYPE notificationtype
        USING type::text::notificationtype
        """
    )
    op.execute("DROP TYPE notificationtype_old")
