from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from shuttle.auth.dependencies import get_current_user
from shuttle.auth.schemas import (
    CheckUserResponse, LoginVerifyRequest, ProfileUpdateRequest, RegisterRequest,
    TravellerLoginResponse, UserOut
)
from shuttle.auth.service import ProfileService, RegistrationService, TravellerLoginService, UserResolver
from shuttle.bookings.schemas import BookingOut, TravellerProfile
from shuttle.database import get_db
from shuttle.models import User
from shuttle.security.dependencies import client_identifier, get_rate_limiters
from shuttle.security.rate_limiter import RateLimiterRegistry
from shuttle.store import DataStore

router = APIRouter()

@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters)
):
    """Register a new account, or set the password of an account created by a booking"""
    service = RegistrationService(DataStore(db), limiters.registration)
    user, created = service.register(payload.model_dump(), client_identifier(request))
    if not created:
        response.status_code = status.HTTP_200_OK
    return user

@router.get("/check-user", response_model=CheckUserResponse)
def check_user(email: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Whether an account exists for the given email"""
    return CheckUserResponse(exists=UserResolver(DataStore(db)).exists(email))

@router.post("/login-verify", response_model=TravellerLoginResponse)
def login_verify(
    payload: LoginVerifyRequest,
    request: Request,
    db: Session = Depends(get_db),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters)
):
    """Check a traveller's email and password and issue a bearer token"""
    service = TravellerLoginService(DataStore(db), limiters.login)
    return service.login(payload.model_dump(), client_identifier(request))

@router.get("/profile", response_model=TravellerProfile)
def read_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The signed-in traveller's account and bookings"""
    bookings = ProfileService(DataStore(db)).bookings_of(current_user)
    return TravellerProfile(
        user=UserOut.model_validate(current_user),
        bookings=[BookingOut.model_validate(booking) for booking in bookings],
    )

@router.patch("/profile", response_model=UserOut)
def update_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the signed-in traveller's name and phone"""
    return ProfileService(DataStore(db)).update_profile(current_user, payload.model_dump())
