"""
Authentication Module

Traveller accounts of the shuttle marketplace.

- service.py: UserResolver (find-or-create by email with merge rules), RegistrationService,
  TravellerLoginService and ProfileService
- dependencies.py: bearer token -> traveller account
- utils.py: password hashing and JWT helpers shared with the admin module
- router.py: registration, sign-in, profile and account lookup endpoints
- schemas.py: Pydantic models for request/response structures
"""

from .router import router
from .service import (
    UserResolver, RegistrationService, TravellerLoginService, ProfileService, ACCOUNT_EXISTS_MESSAGE
)
from .schemas import RegisterRequest, UserOut, UserContact, CheckUserResponse

__all__ = [
    "router",
    "UserResolver",
    "RegistrationService",
    "TravellerLoginService",
    "ProfileService",
    "ACCOUNT_EXISTS_MESSAGE",
    "RegisterRequest",
    "UserOut",
    "UserContact",
    "CheckUserResponse"
]
