"""
Admin Module

Back-office access for the shuttle marketplace.

It includes:

- First-admin setup gated by a setup key
- Admin login with a primary and a failed-attempt rate limiter, issuing bearer tokens
- Company management and the traveller listing

Key Components:
- auth_service.py: AdminAuthService (setup and login)
- admin_service.py: CompanyService and UserDirectory
- dependencies.py: bearer-token dependency resolving the current admin
- router.py: FastAPI endpoints under /api/v1/admin
- schemas.py: Pydantic models for request/response structures
"""

from .router import router
from .auth_service import AdminAuthService
from .admin_service import CompanyService, UserDirectory
from .dependencies import get_current_admin

__all__ = [
    "router",
    "AdminAuthService",
    "CompanyService",
    "UserDirectory",
    "get_current_admin"
]
