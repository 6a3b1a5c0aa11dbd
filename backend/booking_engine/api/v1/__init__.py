"""Versioned API router."""

from fastapi import APIRouter

from . import bookings, health, ops, payments, reviews

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
router.include_router(ops.router, prefix="/ops", tags=["ops"])
