from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from shuttle.auth.utils import verify_token
from shuttle.config import settings
from shuttle.database import get_db
from shuttle.exceptions import AuthenticationError, PermissionDeniedError
from shuttle.models import Admin

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/admin/auth/login")

def get_current_admin(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Admin:
    """Resolve the bearer token to an active admin account"""
    payload = verify_token(token)

    if not payload.get("is_admin"):
        raise PermissionDeniedError("Admin access required")

    try:
        admin_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Could not validate credentials")

    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise AuthenticationError("Could not validate credentials")
    if not admin.is_active:
        raise PermissionDeniedError("Account is deactivated")

    return admin
