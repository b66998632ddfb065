from typing import Any, List, Mapping, Optional, Tuple
from datetime import timedelta

from shuttle.auth.schemas import TravellerLoginResponse, UserOut
from shuttle.auth.utils import create_access_token, get_password_hash, verify_password
from shuttle.config import settings
from shuttle.exceptions import AuthenticationError, ConflictError, UniqueViolationError
from shuttle.models import Booking, User
from shuttle.observability import get_logger
from shuttle.security.dependencies import enforce_rate_limit
from shuttle.security.rate_limiter import RateLimiter
from shuttle.security.sanitization import sanitize_email
from shuttle.security.validation import validate_login, validate_profile_update, validate_registration
from shuttle.store import DataStore

logger = get_logger(__name__)

ACCOUNT_EXISTS_MESSAGE = "An account with this email address already exists. Please sign in instead."
INVALID_LOGIN_MESSAGE = "Invalid email or password"
TRAVELLER_ROLE = "traveller"

class UserResolver:
    """Find-or-create for users keyed by email.

    Users created through a booking have no password. Such an account keeps collecting the
    name/phone of later requests (blank values never overwrite stored ones) and may acquire a
    password once through registration. An account that already has a password is never
    modified here.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def find(self, email: str) -> Optional[User]:
        return self.store.find_one(User, email=email)

    def exists(self, raw_email: Any) -> bool:
        """Whether an account exists for ``raw_email`` after sanitization"""
        email = sanitize_email(raw_email)
        return bool(email) and self.find(email) is not None

    def resolve(self, email: str, name: str, phone: Optional[str] = None) -> User:
        """Return the user for ``email``, creating a passwordless one when absent"""
        user, created = self._find_or_create(email, name=name, phone=phone or "")
        if created or user.password:
            return user
        return self._merge_contact(user, name, phone)

    def register(self, email: str, name: str, phone: Optional[str], password_hash: str) -> Tuple[User, bool]:
        """Create a password account, or claim the passwordless account for ``email``.

        Returns ``(user, created)``. Raises ConflictError when the email already belongs to an
        account with a password.
        """
        user, created = self._find_or_create(email, name=name, phone=phone or "", password=password_hash)
        if created:
            return user, True
        if user.password:
            raise ConflictError(ACCOUNT_EXISTS_MESSAGE)
        return self._merge_contact(user, name, phone, password=password_hash), False

    def _find_or_create(self, email: str, **fields: Any) -> Tuple[User, bool]:
        user = self.find(email)
        if user:
            return user, False

        try:
            return self.store.create(User, email=email, **fields), True
        except UniqueViolationError:
            # Another request created the same email between our read and write
            user = self.find(email)
            if user is None:
                raise
            return user, False

    def _merge_contact(self, user: User, name: Optional[str], phone: Optional[str], **extra: Any) -> User:
        changes = dict(extra)
        if name and name != user.name:
            changes["name"] = name
        if phone and phone != user.phone:
            changes["phone"] = phone
        if not changes:
            return user
        return self.store.update(user, **changes)

class RegistrationService:
    """Account registration behind the registration rate limiter"""

    def __init__(self, store: DataStore, limiter: RateLimiter):
        self.store = store
        self.limiter = limiter
        self.resolver = UserResolver(store)

    def register(self, data: Mapping[str, Any], client_id: str) -> Tuple[User, bool]:
        enforce_rate_limit(self.limiter, client_id)

        cleaned = validate_registration(data).raise_for_errors()

        user, created = self.resolver.register(
            email=cleaned["email"],
            name=cleaned["name"],
            phone=cleaned["phone"],
            password_hash=get_password_hash(cleaned["password"]),
        )
        logger.info(
            "User registered" if created else "Guest account claimed",
            user_id=user.id,
            client_id=client_id,
        )
        return user, created

class TravellerLoginService:
    """Email/password sign-in for traveller accounts"""

    def __init__(self, store: DataStore, limiter: RateLimiter):
        self.store = store
        self.limiter = limiter
        self.resolver = UserResolver(store)

    def login(self, data: Mapping[str, Any], client_id: str) -> TravellerLoginResponse:
        """Verify the credentials and issue a bearer token.

        Unknown emails, accounts created by a booking (no password) and wrong passwords all
        fail with the same message.
        """
        enforce_rate_limit(self.limiter, client_id)

        cleaned = validate_login(data).raise_for_errors()
        user = self.resolver.find(cleaned["email"])

        if user is None or not verify_password(cleaned["password"], user.password):
            reason = "unknown_email" if user is None else "invalid_credentials"
            logger.warning("Traveller login failed", client_id=client_id, reason=reason)
            raise AuthenticationError(INVALID_LOGIN_MESSAGE)

        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": TRAVELLER_ROLE},
            expires_delta=expires_delta,
        )
        logger.info("Traveller logged in", user_id=user.id, client_id=client_id)

        return TravellerLoginResponse(
            access_token=access_token,
            expires_in=int(expires_delta.total_seconds()),
            user=UserOut.model_validate(user),
        )

class ProfileService:
    def __init__(self, store: DataStore):
        self.store = store

    def bookings_of(self, user: User) -> List[Booking]:
        return self.store.find_all(Booking, Booking.user_id == user.id, order_by=Booking.id.desc())

    def update_profile(self, user: User, data: Mapping[str, Any]) -> User:
        """Replace the name and phone; a missing phone clears the stored one"""
        cleaned = validate_profile_update(data).raise_for_errors()
        user = self.store.update(user, name=cleaned["name"], phone=cleaned["phone"])
        logger.info("Profile updated", user_id=user.id)
        return user
