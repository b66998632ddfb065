from typing import Optional
from datetime import datetime

from shuttle.schemas import ApiModel

# ================================
# Admin authentication
# ================================
class AdminSetupRequest(ApiModel):
    setup_key: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class AdminLogin(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None

class AdminOut(ApiModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None

class AdminLoginResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminOut

# ================================
# Companies
# ================================
class CompanyCreate(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None

class CompanyUpdate(CompanyCreate):
    pass

class CompanyOut(ApiModel):
    id: int
    name: str
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# ================================
# Users
# ================================
class AdminUserListItem(ApiModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    has_password: bool
    booking_count: int
    created_at: Optional[datetime] = None
