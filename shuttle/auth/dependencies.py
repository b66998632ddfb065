from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from shuttle.auth.service import TRAVELLER_ROLE
from shuttle.auth.utils import verify_token
from shuttle.config import settings
from shuttle.database import get_db
from shuttle.exceptions import AuthenticationError
from shuttle.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login-verify")

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Resolve a traveller bearer token to its account; admin tokens are not accepted"""
    payload = verify_token(token)

    if payload.get("role") != TRAVELLER_ROLE:
        raise AuthenticationError("Could not validate credentials")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Could not validate credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AuthenticationError("Could not validate credentials")

    return user
