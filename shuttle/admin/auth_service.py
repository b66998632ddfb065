from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
import secrets

from shuttle.admin.schemas import AdminLoginResponse, AdminOut
from shuttle.auth.utils import create_access_token, get_password_hash, verify_password
from shuttle.config import settings
from shuttle.exceptions import (
    AuthenticationError, ConflictError, PermissionDeniedError, ThrottledError
)
from shuttle.models import Admin
from shuttle.observability import get_logger
from shuttle.security.dependencies import enforce_rate_limit
from shuttle.security.rate_limiter import RateLimiterRegistry
from shuttle.security.validation import validate_admin_credentials, validate_admin_setup
from shuttle.store import DataStore

logger = get_logger(__name__)

class AdminAuthService:
    """First-admin setup and admin login.

    Login runs behind two limiters: the admin-login limiter is checked before the credentials,
    and a stricter failure limiter is consulted only after a failed check, so repeated bad
    passwords from one client are throttled long before its regular budget runs out.
    """

    SUPER_ADMIN_ROLE = "super_admin"

    def __init__(self, store: DataStore, limiters: RateLimiterRegistry):
        self.store = store
        self.limiters = limiters

    def setup(self, data: Mapping[str, Any], client_id: str) -> Admin:
        """Create the first admin account; refused once any admin exists"""
        enforce_rate_limit(self.limiters.admin_login, client_id)

        if not settings.ADMIN_SETUP_KEY:
            raise PermissionDeniedError("Admin setup is disabled")

        setup_key = data.get("setup_key")
        if not isinstance(setup_key, str) or not secrets.compare_digest(setup_key, settings.ADMIN_SETUP_KEY):
            logger.warning("Admin setup refused", client_id=client_id, reason="invalid_setup_key")
            raise PermissionDeniedError("Invalid setup key")

        if self.store.find_all(Admin):
            raise ConflictError("Admin already exists")

        cleaned = validate_admin_setup(data).raise_for_errors()
        admin = self.store.create(
            Admin,
            username=cleaned["username"],
            email=cleaned["email"],
            password=get_password_hash(cleaned["password"]),
            role=self.SUPER_ADMIN_ROLE,
            is_active=True,
        )
        logger.info("Initial admin created", admin_id=admin.id, username=admin.username)
        return admin

    def login(self, data: Mapping[str, Any], client_id: str) -> AdminLoginResponse:
        """Check admin credentials and issue a bearer token"""
        enforce_rate_limit(self.limiters.admin_login, client_id)

        cleaned = validate_admin_credentials(data).raise_for_errors()
        admin = self.store.find_one(Admin, username=cleaned["username"])

        if admin is None or not verify_password(cleaned["password"], admin.password):
            self._login_failed(client_id, cleaned["username"], "invalid_credentials", "Invalid credentials")
        if not admin.is_active:
            self._login_failed(client_id, cleaned["username"], "account_disabled", "Account is disabled")

        admin = self.store.update(admin, last_login=datetime.now(timezone.utc))

        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={
                "sub": str(admin.id),
                "username": admin.username,
                "role": admin.role,
                "is_admin": True,
            },
            expires_delta=expires_delta,
        )
        logger.info("Admin logged in", admin_id=admin.id, client_id=client_id)

        return AdminLoginResponse(
            access_token=access_token,
            expires_in=int(expires_delta.total_seconds()),
            admin=AdminOut.model_validate(admin),
        )

    def _login_failed(self, client_id: str, username: str, reason: str, message: str) -> None:
        failure_limiter = self.limiters.admin_login_failure
        logger.warning("Admin login failed", username=username, client_id=client_id, reason=reason)

        if not failure_limiter.allow(client_id):
            retry_after = failure_limiter.retry_after(client_id)
            logger.warning(
                "Rate limit exceeded",
                limiter=failure_limiter.name,
                client_id=client_id,
                retry_after=retry_after,
            )
            raise ThrottledError("Too many failed login attempts. Please try again later.", retry_after)

        raise AuthenticationError(message)
