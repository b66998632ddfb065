from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List

from shuttle.admin.admin_service import CompanyService, UserDirectory
from shuttle.admin.auth_service import AdminAuthService
from shuttle.admin.dependencies import get_current_admin
from shuttle.admin.schemas import (
    AdminLogin, AdminLoginResponse, AdminOut, AdminSetupRequest,
    AdminUserListItem, CompanyCreate, CompanyOut, CompanyUpdate
)
from shuttle.config import settings
from shuttle.database import get_db
from shuttle.models import Admin
from shuttle.security.dependencies import client_identifier, get_rate_limiters
from shuttle.security.rate_limiter import RateLimiterRegistry
from shuttle.store import DataStore

router = APIRouter(prefix=f"{settings.API_V1_STR}/admin", tags=["Admin"])

# Authentication
@router.post("/auth/setup", response_model=AdminOut, status_code=status.HTTP_201_CREATED)
def setup_admin(
    payload: AdminSetupRequest,
    request: Request,
    db: Session = Depends(get_db),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters)
):
    """Create the initial admin account (requires the setup key)"""
    service = AdminAuthService(DataStore(db), limiters)
    return service.setup(payload.model_dump(), client_identifier(request))

@router.post("/auth/login", response_model=AdminLoginResponse)
def admin_login(
    payload: AdminLogin,
    request: Request,
    db: Session = Depends(get_db),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters)
):
    """Admin login with username and password"""
    service = AdminAuthService(DataStore(db), limiters)
    return service.login(payload.model_dump(), client_identifier(request))

@router.get("/auth/me", response_model=AdminOut)
def read_admin_me(admin: Admin = Depends(get_current_admin)):
    return admin

# Company Management Endpoints
@router.get("/companies", response_model=List[CompanyOut])
def get_companies(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return CompanyService(DataStore(db)).list_companies()

@router.post("/companies", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
def create_company(
    company: CompanyCreate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return CompanyService(DataStore(db)).create_company(company.model_dump(exclude_unset=True))

@router.patch("/companies/{company_id}", response_model=CompanyOut)
def update_company(
    company_id: int,
    company: CompanyUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return CompanyService(DataStore(db)).update_company(company_id, company.model_dump(exclude_unset=True))

@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(
    company_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Delete a company that no longer operates any route"""
    CompanyService(DataStore(db)).delete_company(company_id)

# Regular User Management Endpoints
@router.get("/users", response_model=List[AdminUserListItem])
def get_users(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """List traveller accounts, newest first"""
    return UserDirectory(DataStore(db)).list_users()
