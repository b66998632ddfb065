from typing import Optional
from datetime import datetime

from pydantic import BaseModel

from shuttle.schemas import ApiModel

# Request fields are plain optional strings; shuttle.security.validation decides what is valid
class RegisterRequest(ApiModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None

class UserOut(ApiModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

class UserContact(ApiModel):
    name: str
    email: str

class CheckUserResponse(BaseModel):
    exists: bool

class LoginVerifyRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None

class TravellerLoginResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut

class ProfileUpdateRequest(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
