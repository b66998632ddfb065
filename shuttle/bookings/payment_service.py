"""
Payment collaborators and reconciliation.

A payment gateway creates intents (returning the client secret the browser pays with) and
confirms them. ``PaymentReconciler`` turns a gateway confirmation into the booking's final
payment state; only the ``succeeded`` status counts as a payment.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union
import secrets
import threading

import stripe

from shuttle.bookings.schemas import BookingStatus, PaymentMethod, PaymentStatus
from shuttle.config import Settings
from shuttle.exceptions import ConflictError, ExternalError, PaymentDeclinedError, PriceMismatchError
from shuttle.models import Booking, Route, User
from shuttle.observability import get_logger
from shuttle.store import DataStore

logger = get_logger(__name__)

PAYMENT_SUCCEEDED = "succeeded"
PRICE_TOLERANCE = 0.01

def intent_id_from_secret(client_secret: str) -> str:
    """Client secrets have the form ``<intent id>_secret_<random>``"""
    return client_secret.split("_secret_")[0]

def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))

@dataclass
class PaymentConfirmation:
    id: str
    status: str
    amount: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PAYMENT_SUCCEEDED

@dataclass
class BookingDraft:
    """A validated booking that has not been persisted yet"""
    route: Route
    user: User
    payment_method: str
    pickup_address: str
    amount: float

class SimulatedPaymentGateway:
    """In-process gateway for development and tests.

    Intents live in memory; confirming with ``pm_card_declined`` (or an unknown secret)
    reports ``requires_payment_method`` instead of ``succeeded``.
    """

    DECLINED_METHOD = "pm_card_declined"

    def __init__(self):
        self._intents: Dict[str, Dict[str, Union[float, str]]] = {}
        self._lock = threading.Lock()

    def create_intent(self, amount: float, currency: str) -> str:
        intent_id = f"pi_{secrets.token_hex(12)}"
        client_secret = f"{intent_id}_secret_{secrets.token_hex(12)}"
        with self._lock:
            self._intents[client_secret] = {"amount": amount, "currency": currency, "status": "requires_confirmation"}
        return client_secret

    def confirm(self, client_secret: str, payment_method: str) -> PaymentConfirmation:
        intent_id = intent_id_from_secret(client_secret)
        with self._lock:
            intent = self._intents.get(client_secret)
            if intent is None:
                return PaymentConfirmation(id=intent_id, status="requires_payment_method")
            if payment_method == self.DECLINED_METHOD or not payment_method:
                intent["status"] = "requires_payment_method"
            else:
                intent["status"] = PAYMENT_SUCCEEDED
            return PaymentConfirmation(id=intent_id, status=intent["status"], amount=intent["amount"])

class StripePaymentGateway:
    """Card payments through the Stripe API"""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def create_intent(self, amount: float, currency: str) -> str:
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency,
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise ExternalError(f"Failed to create PaymentIntent: {e}")
        return intent.client_secret

    def confirm(self, client_secret: str, payment_method: str) -> PaymentConfirmation:
        intent_id = intent_id_from_secret(client_secret)
        try:
            intent = stripe.PaymentIntent.confirm(
                intent_id,
                payment_method=payment_method,
                api_key=self.api_key,
            )
        except stripe.CardError as e:
            logger.warning("Card declined", payment_intent=intent_id, code=e.code)
            return PaymentConfirmation(id=intent_id, status="requires_payment_method")
        except stripe.StripeError as e:
            raise ExternalError(f"Failed to confirm PaymentIntent {intent_id}: {e}")
        return PaymentConfirmation(id=intent.id, status=intent.status, amount=intent.amount / 100)

def build_payment_gateway(settings: Settings):
    """Gateway selected by ``PAYMENT_PROVIDER``"""
    if settings.PAYMENT_PROVIDER == "stripe":
        if not settings.STRIPE_SECRET_KEY:
            raise ValueError("STRIPE_SECRET_KEY is required when PAYMENT_PROVIDER is 'stripe'")
        return StripePaymentGateway(settings.STRIPE_SECRET_KEY)
    if settings.PAYMENT_PROVIDER == "simulated":
        return SimulatedPaymentGateway()
    raise ValueError(f"Unknown PAYMENT_PROVIDER: {settings.PAYMENT_PROVIDER}")

class PaymentReconciler:
    """Applies a gateway confirmation to a card booking.

    Field validation is not repeated here: the draft or booking was validated at intake.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def reconcile(
        self,
        target: Union[BookingDraft, Booking],
        confirmation: Optional[PaymentConfirmation]
    ) -> Booking:
        """Persist the paid booking for a draft, or settle a pending card booking.

        A draft without a successful confirmation creates nothing. A persisted booking whose
        payment did not succeed is marked ``failed`` so the client can retry.
        """
        if isinstance(target, BookingDraft):
            return self._reconcile_draft(target, confirmation)
        return self._reconcile_booking(target, confirmation)

    def _reconcile_draft(self, draft: BookingDraft, confirmation: Optional[PaymentConfirmation]) -> Booking:
        self._check_reference_unused(confirmation, booking_id=None)
        self._check_amount(draft.amount, confirmation)
        if confirmation is None or not confirmation.succeeded:
            self._declined(confirmation, booking_id=None)

        booking = self.store.create(
            Booking,
            route_id=draft.route.id,
            user_id=draft.user.id,
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PAID.value,
            payment_method=PaymentMethod.CARD.value,
            payment_reference=confirmation.id,
            pickup_address=draft.pickup_address,
            amount=draft.amount,
        )
        logger.info("Payment reconciled", booking_id=booking.id, payment_reference=confirmation.id)
        return booking

    def _reconcile_booking(self, booking: Booking, confirmation: Optional[PaymentConfirmation]) -> Booking:
        if booking.payment_method != PaymentMethod.CARD.value:
            raise ConflictError("Booking is not paid by card")
        if booking.status == BookingStatus.CANCELLED.value:
            raise ConflictError("Booking is cancelled")
        if booking.payment_status not in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
            raise ConflictError(f"Booking payment is already {booking.payment_status}")

        self._check_reference_unused(confirmation, booking_id=booking.id)
        self._check_amount(booking.amount, confirmation)
        if confirmation is None or not confirmation.succeeded:
            self.store.update(
                booking,
                payment_status=PaymentStatus.FAILED.value,
                payment_reference=confirmation.id if confirmation else booking.payment_reference,
            )
            self._declined(confirmation, booking_id=booking.id)

        booking = self.store.update(
            booking,
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PAID.value,
            payment_reference=confirmation.id,
        )
        logger.info("Payment reconciled", booking_id=booking.id, payment_reference=confirmation.id)
        return booking

    def _check_reference_unused(self, confirmation: Optional[PaymentConfirmation], booking_id: Optional[int]) -> None:
        """One gateway payment settles at most one booking"""
        if confirmation is None or not confirmation.id:
            return
        holder = self.store.find_one(Booking, payment_reference=confirmation.id)
        if holder is not None and holder.id != booking_id:
            logger.warning(
                "Payment reference reused",
                payment_reference=confirmation.id,
                booking_id=booking_id,
                holder_booking_id=holder.id,
            )
            raise ConflictError("Payment has already been applied to another booking")

    def _check_amount(self, expected: float, confirmation: Optional[PaymentConfirmation]) -> None:
        if confirmation is None or confirmation.amount is None:
            return
        if abs(confirmation.amount - expected) > PRICE_TOLERANCE:
            raise PriceMismatchError(expected, confirmation.amount)

    def _declined(self, confirmation: Optional[PaymentConfirmation], booking_id: Optional[int]) -> None:
        status = confirmation.status if confirmation else "missing"
        logger.warning(
            "Payment not completed",
            booking_id=booking_id,
            payment_reference=confirmation.id if confirmation else None,
            payment_status=status,
        )
        raise PaymentDeclinedError(f"Payment did not succeed (status: {status})")
