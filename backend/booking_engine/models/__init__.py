"""ORM models package export."""

from booking_engine.models.audit_event import AuditEvent
from booking_engine.models.facility import Facility, Space
from booking_engine.models.notification import Notification, NotificationType
from booking_engine.models.payment import (
    ChargeRequest,
    GatewayRequestStatus,
    RefundRequest,
)
from booking_engine.models.profile import ConsumerProfile, OwnerProfile
from booking_engine.models.reservation import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    CancellationInitiator,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from booking_engine.models.review import (
    Review,
    ReviewReport,
    ReviewReportStatus,
    ReviewType,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AuditEvent",
    "CancellationInitiator",
    "ChargeRequest",
    "ConsumerProfile",
    "Facility",
    "GatewayRequestStatus",
    "Notification",
    "NotificationType",
    "OwnerProfile",
    "PaymentStatus",
    "RefundRequest",
    "Reservation",
    "ReservationStatus",
    "Review",
    "ReviewReport",
    "ReviewReportStatus",
    "ReviewType",
    "Space",
    "TERMINAL_STATUSES",
]
