from typing import Any, List, Mapping

from shuttle.auth.service import UserResolver
from shuttle.bookings.payment_service import PRICE_TOLERANCE, BookingDraft
from shuttle.bookings.schemas import BookingStatus, PaymentMethod, PaymentStatus
from shuttle.exceptions import NotFoundError, PriceMismatchError, ValidationError
from shuttle.models import Booking
from shuttle.observability import get_logger
from shuttle.routes.service import RouteResolver
from shuttle.security.dependencies import enforce_rate_limit
from shuttle.security.rate_limiter import RateLimiter
from shuttle.security.sanitization import (
    PICKUP_ADDRESS_MAX_LENGTH, sanitize_address, sanitize_payment_status
)
from shuttle.security.validation import validate_booking_request
from shuttle.store import DataStore

logger = get_logger(__name__)

# Initial (status, payment_status) per payment method
INITIAL_STATES = {
    PaymentMethod.CASH.value: (BookingStatus.CONFIRMED.value, PaymentStatus.NOT_REQUIRED.value),
    PaymentMethod.CARD.value: (BookingStatus.PENDING.value, PaymentStatus.PENDING.value),
}

class BookingIntake:
    """Creates bookings from untrusted requests.

    Steps, in order: rate limit, validation, route resolution, price check, user resolution,
    persistence. A call creates at most one route (fallback) and creates or updates at most
    one user. Card bookings start pending and are settled by PaymentReconciler.
    """

    def __init__(self, store: DataStore, limiter: RateLimiter):
        self.store = store
        self.limiter = limiter
        self.route_resolver = RouteResolver(store)
        self.user_resolver = UserResolver(store)

    def create(self, data: Mapping[str, Any], client_id: str) -> Booking:
        """Run the whole pipeline and persist the booking"""
        return self.persist(self.prepare(data, client_id))

    def prepare(self, data: Mapping[str, Any], client_id: str) -> BookingDraft:
        """Everything up to, but not including, persisting the booking"""
        enforce_rate_limit(self.limiter, client_id)

        result = validate_booking_request(data)
        if not result.valid:
            logger.info("Booking request rejected", client_id=client_id, errors=result.errors)
        cleaned = result.raise_for_errors()

        reference = cleaned["route"]
        route = self.route_resolver.resolve(reference)

        requested_price = reference.get("price")
        if requested_price is not None and abs(route.price - requested_price) > PRICE_TOLERANCE:
            logger.info(
                "Booking price mismatch",
                client_id=client_id,
                route_id=route.id,
                route_price=route.price,
                requested_price=requested_price,
            )
            raise PriceMismatchError(route.price, requested_price)

        user = self.user_resolver.resolve(cleaned["email"], cleaned["name"], cleaned["phone"])

        return BookingDraft(
            route=route,
            user=user,
            payment_method=cleaned["payment_method"],
            pickup_address=cleaned["pickup_address"],
            amount=route.price,
        )

    def persist(self, draft: BookingDraft) -> Booking:
        status, payment_status = INITIAL_STATES[draft.payment_method]
        booking = self.store.create(
            Booking,
            route_id=draft.route.id,
            user_id=draft.user.id,
            status=status,
            payment_status=payment_status,
            payment_method=draft.payment_method,
            pickup_address=draft.pickup_address,
            amount=draft.amount,
        )
        logger.info(
            "Booking created",
            booking_id=booking.id,
            route_id=draft.route.id,
            user_id=draft.user.id,
            payment_method=draft.payment_method,
            status=status,
        )
        return booking

class BookingService:
    """Admin management of existing bookings"""

    def __init__(self, store: DataStore):
        self.store = store

    def list_bookings(self) -> List[Booking]:
        return self.store.find_all(Booking, order_by=Booking.created_at.desc())

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.store.find_one(Booking, id=booking_id)
        if not booking:
            raise NotFoundError(f"Booking with ID {booking_id} not found")
        return booking

    def update_booking(self, booking_id: int, data: Mapping[str, Any]) -> Booking:
        """Change status, payment status or pickup address.

        The payment status must stay consistent with the payment method: ``not_required``
        for cash bookings and never for card bookings.
        """
        booking = self.get_booking(booking_id)
        errors = []
        changes = {}

        if data.get("status") is not None:
            status = str(data["status"]).strip().lower()
            if status not in [s.value for s in BookingStatus]:
                errors.append("Status must be one of: pending, confirmed, cancelled")
            else:
                changes["status"] = status

        if data.get("payment_status") is not None:
            payment_status = sanitize_payment_status(data["payment_status"])
            is_cash = booking.payment_method == PaymentMethod.CASH.value
            if payment_status is None:
                errors.append("Payment status must be one of: paid, pending, failed, not_required")
            elif is_cash and payment_status != PaymentStatus.NOT_REQUIRED.value:
                errors.append("Cash bookings always have payment status 'not_required'")
            elif not is_cash and payment_status == PaymentStatus.NOT_REQUIRED.value:
                errors.append("Card bookings cannot have payment status 'not_required'")
            else:
                changes["payment_status"] = payment_status

        if data.get("pickup_address") is not None:
            pickup_address = sanitize_address(data["pickup_address"])
            if not pickup_address or len(pickup_address) > PICKUP_ADDRESS_MAX_LENGTH:
                errors.append(f"Pickup address is required and must be at most {PICKUP_ADDRESS_MAX_LENGTH} characters")
            else:
                changes["pickup_address"] = pickup_address

        if errors:
            raise ValidationError(errors)
        if not changes:
            return booking

        booking = self.store.update(booking, **changes)
        logger.info("Booking updated", booking_id=booking.id, changes=sorted(changes))
        return booking

    def delete_booking(self, booking_id: int) -> None:
        booking = self.get_booking(booking_id)
        self.store.delete(booking)
        logger.info("Booking deleted", booking_id=booking_id)
