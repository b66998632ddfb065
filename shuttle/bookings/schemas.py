from typing import List, Optional, Union
from datetime import datetime
from enum import Enum

from shuttle.auth.schemas import UserContact, UserOut
from shuttle.routes.schemas import RouteOut, RouteReference
from shuttle.schemas import ApiModel

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    NOT_REQUIRED = "not_required"

class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"

# Booking Models
class BookingCreateRequest(ApiModel):
    """Public booking request; every field is sanitized and validated by BookingIntake"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    pickup_address: Optional[str] = None
    payment_method: Optional[str] = None
    route: Optional[RouteReference] = None
    # Card bookings paid up front: the intent secret and the provider's payment method id
    client_secret: Optional[str] = None
    payment_method_id: Optional[str] = None

class BookingOut(ApiModel):
    id: int
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    amount: float
    pickup_address: Optional[str] = None
    route: RouteOut
    user: UserContact
    created_at: Optional[datetime] = None

class TravellerProfile(ApiModel):
    """A traveller account with its bookings, newest first"""
    user: UserOut
    bookings: List[BookingOut]

class BookingUpdate(ApiModel):
    """Admin booking update"""
    status: Optional[str] = None
    payment_status: Optional[str] = None
    pickup_address: Optional[str] = None

# Payment Models
class PaymentIntentRequest(ApiModel):
    amount: Optional[Union[float, str]] = None
    currency: Optional[str] = None

class PaymentIntentResponse(ApiModel):
    client_secret: str

class ConfirmPaymentRequest(ApiModel):
    client_secret: Optional[str] = None
    payment_method: Optional[str] = None
