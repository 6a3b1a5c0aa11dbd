"""Tests for the time-driven lifecycle sweeps."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from booking_engine.core.clock import coerce_utc
from booking_engine.models import (
    CancellationInitiator,
    NotificationType,
    ReservationStatus,
)
from booking_engine.services import reservation_service, review_service, sweep_service

from support import CONSUMER_ID, NOW, OWNER_ID, book, comment, completed, reload, slot

pytestmark = pytest.mark.asyncio


async def _confirmed(session, facility, **kwargs):
    created = await book(session, facility, **kwargs)
    paid = await reservation_service.record_payment_succeeded(
        session, reservation_id=created.reservation.id, payment_reference="pi_1", now=NOW
    )
    return paid.reservation


async def test_start_then_complete(session, make_facility, policy) -> None:
    facility = await make_facility()
    start, end = slot()
    reservation = await _confirmed(session, facility, start_at=start, end_at=end)

    early = await sweep_service.start_due_reservations(session, now=start - timedelta(seconds=1))
    assert early.processed == 0

    started = await sweep_service.start_due_reservations(session, now=start)
    assert started.processed == 1
    assert (await reload(session, reservation.id)).status == ReservationStatus.IN_PROGRESS

    completed = await sweep_service.complete_due_reservations(session, now=end, policy=policy)
    assert completed.processed == 1
    stored = await reload(session, reservation.id)
    assert stored.status == ReservationStatus.COMPLETED
    assert coerce_utc(stored.completed_at) == end
    assert coerce_utc(stored.review_deadline) == end + timedelta(days=30)
    assert sorted(i.recipient_id for i in completed.intents) == [CONSUMER_ID, OWNER_ID]
    assert {i.type for i in completed.intents} == {NotificationType.BOOKING_COMPLETED}


async def test_sweeps_are_idempotent(session, make_facility, policy) -> None:
    facility = await make_facility()
    start, end = slot()
    await _confirmed(session, facility, start_at=start, end_at=end)

    first = await sweep_service.run_progress_sweeps(session, now=end, policy=policy)
    second = await sweep_service.run_progress_sweeps(session, now=end, policy=policy)

    assert first.processed == 1
    assert second.processed == 0
    assert second.intents == []


async def test_confirmed_reservation_completes_when_start_was_missed(
    session, make_facility, policy
) -> None:
    facility = await make_facility()
    start, end = slot()
    reservation = await _confirmed(session, facility, start_at=start, end_at=end)

    result = await sweep_service.run_progress_sweeps(
        session, now=end + timedelta(hours=1), policy=policy
    )

    assert result.processed == 1
    assert (await reload(session, reservation.id)).status == ReservationStatus.COMPLETED


async def test_pending_reservations_do_not_start(session, make_facility, policy) -> None:
    facility = await make_facility()
    start, end = slot()
    created = await book(session, facility, start_at=start, end_at=end)

    result = await sweep_service.run_progress_sweeps(session, now=start, policy=policy)

    assert result.processed == 0
    assert (await reload(session, created.reservation.id)).status == ReservationStatus.PENDING


async def test_unpaid_reservations_expire(session, make_facility, policy) -> None:
    facility = await make_facility()
    created = await book(session, facility)
    reservation_id = created.reservation.id

    too_soon = await sweep_service.expire_unpaid_reservations(
        session, now=NOW + timedelta(minutes=29), policy=policy
    )
    assert too_soon.processed == 0

    expired = await sweep_service.expire_unpaid_reservations(
        session, now=NOW + timedelta(minutes=30), policy=policy
    )
    assert expired.processed == 1
    stored = await reload(session, reservation_id)
    assert stored.status == ReservationStatus.CANCELLED
    assert stored.cancellation_initiated_by == CancellationInitiator.SYSTEM
    assert stored.cancellation_reason == sweep_service.EXPIRY_REASON
    assert stored.refund_amount == Decimal("0.00")
    (notice,) = expired.intents
    assert notice.type == NotificationType.BOOKING_CANCELLED
    assert notice.recipient_id == CONSUMER_ID

    again = await sweep_service.expire_unpaid_reservations(
        session, now=NOW + timedelta(hours=2), policy=policy
    )
    assert again.processed == 0


async def test_failed_payments_expire_but_paid_ones_do_not(
    session, make_facility, policy
) -> None:
    facility = await make_facility()
    first_start, first_end = slot(days=3)
    second_start, second_end = slot(days=4)
    failed = await book(session, facility, start_at=first_start, end_at=first_end)
    await reservation_service.record_payment_failed(
        session, reservation_id=failed.reservation.id, reason="card_declined", now=NOW
    )
    paid = await _confirmed(session, facility, start_at=second_start, end_at=second_end)

    result = await sweep_service.expire_unpaid_reservations(
        session, now=NOW + timedelta(hours=1), policy=policy
    )

    assert result.processed == 1
    assert (await reload(session, failed.reservation.id)).status == ReservationStatus.CANCELLED
    assert (await reload(session, paid.id)).status == ReservationStatus.CONFIRMED


async def test_expired_slot_can_be_booked_again(session, make_facility, policy) -> None:
    facility = await make_facility()
    start, end = slot()
    await book(session, facility, start_at=start, end_at=end)
    later = NOW + timedelta(hours=1)
    await sweep_service.expire_unpaid_reservations(session, now=later, policy=policy)

    rebooked = await book(session, facility, start_at=start, end_at=end, now=later)

    assert rebooked.reservation.status == ReservationStatus.PENDING


async def test_overlapping_progress_sweeps_complete_once(
    sessionmaker, make_facility, policy
) -> None:
    facility = await make_facility()
    start, end = slot()
    async with sessionmaker() as session:
        await _confirmed(session, facility, start_at=start, end_at=end)

    async def sweep() -> sweep_service.SweepResult:
        async with sessionmaker() as session:
            return await sweep_service.run_progress_sweeps(session, now=end, policy=policy)

    results = await asyncio.gather(sweep(), sweep())

    assert sum(r.processed for r in results) == 1
    assert len([i for r in results for i in r.intents]) == 2


async def test_overlapping_expiry_sweeps_expire_once(
    sessionmaker, make_facility, policy
) -> None:
    facility = await make_facility()
    async with sessionmaker() as session:
        await book(session, facility)
    later = NOW + timedelta(hours=1)

    async def sweep() -> sweep_service.SweepResult:
        async with sessionmaker() as session:
            return await sweep_service.expire_unpaid_reservations(
                session, now=later, policy=policy
            )

    results = await asyncio.gather(sweep(), sweep())

    assert sum(r.processed for r in results) == 1
    assert len([i for r in results for i in r.intents]) == 1


async def test_rows_changed_after_selection_are_skipped(
    sessionmaker, make_facility, policy, monkeypatch
) -> None:
    facility = await make_facility()
    async with sessionmaker() as session:
        created = await book(session, facility)
    original_advance = sweep_service._advance

    async def consumer_cancels_first(session, reservation, **kwargs):
        async with sessionmaker() as other:
            await reservation_service.cancel_reservation(
                other, reservation_id=reservation.id, actor_id=CONSUMER_ID, now=NOW
            )
        return await original_advance(session, reservation, **kwargs)

    monkeypatch.setattr(sweep_service, "_advance", consumer_cancels_first)

    async with sessionmaker() as session:
        result = await sweep_service.expire_unpaid_reservations(
            session, now=NOW + timedelta(hours=1), policy=policy
        )
        stored = await reload(session, created.reservation.id)

    assert result.processed == 0
    assert result.skipped == 1
    assert result.intents == []
    assert stored.cancellation_initiated_by == CancellationInitiator.CONSUMER


async def test_booking_reminders_go_to_both_parties_once(
    session, make_facility, policy
) -> None:
    facility = await make_facility()
    start, end = slot()
    reservation = await _confirmed(session, facility, start_at=start, end_at=end)
    unpaid_start, unpaid_end = slot(hour=14)
    await book(session, facility, start_at=unpaid_start, end_at=unpaid_end)

    too_early = await sweep_service.send_booking_reminders(
        session, now=start - timedelta(hours=25), policy=policy
    )
    assert too_early.processed == 0

    reminded_at = start - timedelta(hours=23)
    sent = await sweep_service.send_booking_reminders(
        session, now=reminded_at, policy=policy
    )
    assert sent.processed == 1
    assert sorted(i.recipient_id for i in sent.intents) == [CONSUMER_ID, OWNER_ID]
    assert {i.type for i in sent.intents} == {NotificationType.BOOKING_REMINDER}
    stored = await reload(session, reservation.id)
    assert coerce_utc(stored.reminder_sent_at) == reminded_at

    again = await sweep_service.send_booking_reminders(
        session, now=start - timedelta(hours=1), policy=policy
    )
    assert again.processed == 0
    assert again.intents == []


async def test_review_reminders_skip_parties_who_reviewed(
    session, make_facility, policy
) -> None:
    facility = await make_facility()
    reservation = await completed(session, facility)
    completed_at = coerce_utc(reservation.completed_at)
    await review_service.create_review(
        session,
        reservation_id=reservation.id,
        reviewer_id=CONSUMER_ID,
        reviewee_id=OWNER_ID,
        overall_rating=4,
        comment=comment(),
        now=completed_at + timedelta(days=1),
    )

    too_soon = await sweep_service.send_review_reminders(
        session, now=completed_at + timedelta(days=6), policy=policy
    )
    assert too_soon.processed == 0

    due = await sweep_service.send_review_reminders(
        session, now=completed_at + timedelta(days=7), policy=policy
    )
    assert due.processed == 1
    (reminder,) = due.intents
    assert reminder.type == NotificationType.REVIEW_REMINDER
    assert reminder.recipient_id == OWNER_ID

    again = await sweep_service.send_review_reminders(
        session, now=completed_at + timedelta(days=8), policy=policy
    )
    assert again.processed == 0


async def test_review_reminders_stop_once_the_window_closes(
    session, make_facility, policy
) -> None:
    facility = await make_facility()
    reservation = await completed(session, facility)

    late = await sweep_service.send_review_reminders(
        session, now=coerce_utc(reservation.review_deadline), policy=policy
    )

    assert late.processed == 0


async def test_overlapping_reminder_sweeps_notify_once(
    sessionmaker, make_facility, policy
) -> None:
    facility = await make_facility()
    start, end = slot()
    async with sessionmaker() as session:
        await _confirmed(session, facility, start_at=start, end_at=end)

    async def sweep() -> sweep_service.SweepResult:
        async with sessionmaker() as session:
            return await sweep_service.run_reminder_sweeps(
                session, now=start - timedelta(hours=2), policy=policy
            )

    results = await asyncio.gather(sweep(), sweep())

    assert sum(r.processed for r in results) == 1
    assert len([i for r in results for i in r.intents]) == 2
