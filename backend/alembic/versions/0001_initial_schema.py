"""Initial booking engine schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "facilities",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("total_bookings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Numeric(2, 1), nullable=False, server_default="0"),
        sa.Column("reviews_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category_ratings", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_facilities_owner_id", "facilities", ["owner_id"])

    op.create_table(
        "spaces",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "facility_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("facilities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "consumer_profiles",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=255)),
        sa.Column("rating", sa.Numeric(2, 1), nullable=False, server_default="0"),
        sa.Column("reviews_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category_ratings", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "owner_profiles",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=255)),
        sa.Column("rating", sa.Numeric(2, 1), nullable=False, server_default="0"),
        sa.Column("reviews_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    reservation_status_enum = sa.Enum(
        "PENDING",
        "CONFIRMED",
        "IN_PROGRESS",
        "COMPLETED",
        "CANCELLED",
        name="reservationstatus",
    )
    payment_status_enum = sa.Enum(
        "PENDING", "SUCCEEDED", "FAILED", "REFUNDED", name="paymentstatus"
    )
    initiator_enum = sa.Enum("CONSUMER", "OWNER", "SYSTEM", name="cancellationinitiator")

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("consumer_id", sa.String(length=64), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column(
            "facility_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("facilities.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "space_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("spaces.id", ondelete="SET NULL"),
        ),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_hours", sa.Numeric(9, 6), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(10, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("commission_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", reservation_status_enum, nullable=False),
        sa.Column("payment_status", payment_status_enum, nullable=False),
        sa.Column("payment_reference", sa.String(length=255)),
        sa.Column("payment_failure_reason", sa.String(length=512)),
        sa.Column("cancellation_reason", sa.String(length=512)),
        sa.Column("cancellation_initiated_by", initiator_enum),
        sa.Column("refund_rate", sa.Numeric(3, 2)),
        sa.Column("refund_amount", sa.Numeric(10, 2)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("has_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("review_deadline", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.String(length=500)),
        *_timestamps(),
        sa.CheckConstraint("end_at > start_at", name="ck_reservation_interval"),
        sa.CheckConstraint(
            "round(subtotal + commission_amount, 2) = round(total_price, 2)",
            name="ck_reservation_total",
        ),
    )
    op.create_index("ix_reservations_owner_id", "reservations", ["owner_id"])
    op.create_index(
        "ix_reservations_facility_status", "reservations", ["facility_id", "status"]
    )
    op.create_index(
        "ix_reservations_consumer_status", "reservations", ["consumer_id", "status"]
    )

    review_type_enum = sa.Enum("CONSUMER_TO_OWNER", "OWNER_TO_CONSUMER", name="reviewtype")
    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "reservation_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reservations.id"),
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.String(length=64), nullable=False),
        sa.Column("reviewee_id", sa.String(length=64), nullable=False),
        sa.Column("review_type", review_type_enum, nullable=False),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("category_ratings", sa.JSON(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_reported", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("reservation_id", "reviewer_id", name="uq_review_reviewer"),
    )
    op.create_index(
        "ix_reviews_reviewee_type", "reviews", ["reviewee_id", "review_type", "is_hidden"]
    )

    report_status_enum = sa.Enum("PENDING", "RESOLVED", name="reviewreportstatus")
    op.create_table(
        "review_reports",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "review_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reporter_id", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.String(length=1024), nullable=False),
        sa.Column("status", report_status_enum, nullable=False),
        *_timestamps(),
    )

    notification_type_enum = sa.Enum(
        "BOOKING_CREATED",
        "BOOKING_CONFIRMED",
        "BOOKING_CANCELLED",
        "BOOKING_COMPLETED",
        "PAYMENT_RECEIVED",
        "PAYMENT_FAILED",
        "REVIEW_RECEIVED",
        name="notificationtype",
    )
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("recipient_id", sa.String(length=64), nullable=False),
        sa.Column("type", notification_type_enum, nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])

    gateway_status_enum = sa.Enum(
        "QUEUED", "SUBMITTED", "FAILED", name="gatewayrequeststatus"
    )
    op.create_table(
        "charge_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "reservation_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reservations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("status", gateway_status_enum, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "refund_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "reservation_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reservations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("original_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_reference", sa.String(length=255)),
        sa.Column("initiated_by", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.String(length=512)),
        sa.Column("status", gateway_status_enum, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("actor_id", sa.String(length=64)),
        sa.Column("reservation_id", sa.Uuid(as_uuid=True)),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_events_reservation_id", "audit_events", ["reservation_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_reservation_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("refund_requests")
    op.drop_table("charge_requests")
    sa.Enum(name="gatewayrequeststatus").drop(op.get_bind(), checkfirst=False)

    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_table("notifications")
    sa.Enum(name="notificationtype").drop(op.get_bind(), checkfirst=False)

    op.drop_table("review_reports")
    sa.Enum(name="reviewreportstatus").drop(op.get_bind(), checkfirst=False)
    op.drop_index("ix_reviews_reviewee_type", table_name="reviews")
    op.drop_table("reviews")
    sa.Enum(name="reviewtype").drop(op.get_bind(), checkfirst=False)

    op.drop_index("ix_reservations_consumer_status", table_name="reservations")
    op.drop_index("ix_reservations_facility_status", table_name="reservations")
    op.drop_index("ix_reservations_owner_id", table_name="reservations")
    op.drop_table("reservations")
    sa.Enum(name="cancellationinitiator").drop(op.get_bind(), checkfirst=False)
    sa.Enum(name="paymentstatus").drop(op.get_bind(), checkfirst=False)
    sa.Enum(name="reservationstatus").drop(op.get_bind(), checkfirst=False)

    op.drop_table("owner_profiles")
    op.drop_table("consumer_profiles")
    op.drop_table("spaces")
    op.drop_index("ix_facilities_owner_id", table_name="facilities")
    op.drop_table("facilities")
