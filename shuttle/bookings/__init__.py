"""
Booking & Payment Module

Booking intake for the shuttle marketplace. It includes:

- The intake pipeline: rate limiting, validation, route resolution (with fallback routes),
  price check, user resolution and persistence
- Initial booking state by payment method (cash confirmed at once, card pending)
- Payment intents and confirmation through a pluggable gateway (simulated or Stripe)
- Payment reconciliation into the booking's final payment state
- Admin booking management

Key Components:
- booking_service.py: BookingIntake and BookingService
- payment_service.py: payment gateways and PaymentReconciler
- router.py: FastAPI endpoints for bookings and payments
- schemas.py: Pydantic models and status enumerations
"""

from .router import router, payments_router
from .booking_service import BookingIntake, BookingService
from .payment_service import (
    PaymentReconciler, PaymentConfirmation, BookingDraft,
    SimulatedPaymentGateway, StripePaymentGateway, build_payment_gateway
)
from .schemas import (
    BookingStatus, PaymentStatus, PaymentMethod,
    BookingCreateRequest, BookingOut, BookingUpdate
)

__all__ = [
    "router",
    "payments_router",
    "BookingIntake",
    "BookingService",
    "PaymentReconciler",
    "PaymentConfirmation",
    "BookingDraft",
    "SimulatedPaymentGateway",
    "StripePaymentGateway",
    "build_payment_gateway",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    "BookingCreateRequest",
    "BookingOut",
    "BookingUpdate"
]
