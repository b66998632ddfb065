from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List

from shuttle.admin.dependencies import get_current_admin
from shuttle.bookings.booking_service import BookingIntake, BookingService
from shuttle.bookings.payment_service import PaymentReconciler
from shuttle.bookings.schemas import (
    BookingCreateRequest, BookingOut, BookingUpdate, ConfirmPaymentRequest,
    PaymentIntentRequest, PaymentIntentResponse, PaymentMethod
)
from shuttle.config import settings
from shuttle.database import get_db
from shuttle.exceptions import ValidationError
from shuttle.models import Admin
from shuttle.security.dependencies import client_identifier, get_rate_limiters
from shuttle.security.rate_limiter import RateLimiterRegistry
from shuttle.security.validation import validate_payment_intent
from shuttle.store import DataStore

router = APIRouter()
payments_router = APIRouter()

def get_payment_gateway(request: Request):
    """Gateway owned by the running application (see ``shuttle.main.create_app``)"""
    return request.app.state.payment_gateway

@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters),
    gateway = Depends(get_payment_gateway)
):
    """Create a booking.

    Cash bookings are confirmed immediately; card bookings stay pending until their payment
    is confirmed, unless the request already carries the intent to confirm.
    """
    store = DataStore(db)
    intake = BookingIntake(store, limiters.booking)
    draft = intake.prepare(payload.model_dump(), client_identifier(request))

    if draft.payment_method == PaymentMethod.CARD.value and payload.client_secret:
        confirmation = gateway.confirm(payload.client_secret, payload.payment_method_id or "")
        return PaymentReconciler(store).reconcile(draft, confirmation)

    return intake.persist(draft)

@router.post("/{booking_id}/confirm-payment", response_model=BookingOut)
def confirm_booking_payment(
    booking_id: int,
    payload: ConfirmPaymentRequest,
    db: Session = Depends(get_db),
    gateway = Depends(get_payment_gateway)
):
    """Confirm the card payment of a pending booking"""
    if not payload.client_secret or not payload.payment_method:
        raise ValidationError(["clientSecret and paymentMethod are required"])

    store = DataStore(db)
    booking = BookingService(store).get_booking(booking_id)
    confirmation = gateway.confirm(payload.client_secret, payload.payment_method)
    return PaymentReconciler(store).reconcile(booking, confirmation)

# Admin booking management
@router.get("", response_model=List[BookingOut])
def get_bookings(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return BookingService(DataStore(db)).list_bookings()

@router.patch("/{booking_id}", response_model=BookingOut)
def update_booking(
    booking_id: int,
    booking: BookingUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return BookingService(DataStore(db)).update_booking(booking_id, booking.model_dump(exclude_unset=True))

@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    BookingService(DataStore(db)).delete_booking(booking_id)

@payments_router.post("/intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    payload: PaymentIntentRequest,
    gateway = Depends(get_payment_gateway)
):
    """Create a payment intent and return its client secret"""
    cleaned = validate_payment_intent(payload.model_dump(), settings.PAYMENT_CURRENCY).raise_for_errors()
    client_secret = gateway.create_intent(cleaned["amount"], cleaned["currency"])
    return PaymentIntentResponse(client_secret=client_secret)
