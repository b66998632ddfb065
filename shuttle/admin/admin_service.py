from typing import Any, List, Mapping

from shuttle.admin.schemas import AdminUserListItem
from shuttle.exceptions import ConflictError, NotFoundError
from shuttle.models import Company, User
from shuttle.security.validation import validate_company
from shuttle.store import DataStore

class CompanyService:
    """Admin CRUD over transport companies"""

    def __init__(self, store: DataStore):
        self.store = store

    def list_companies(self) -> List[Company]:
        return self.store.find_all(Company, order_by=Company.name)

    def get_company(self, company_id: int) -> Company:
        company = self.store.find_one(Company, id=company_id)
        if not company:
            raise NotFoundError(f"Company with ID {company_id} not found")
        return company

    def create_company(self, data: Mapping[str, Any]) -> Company:
        cleaned = validate_company(data).raise_for_errors()
        return self.store.create(Company, **cleaned)

    def update_company(self, company_id: int, data: Mapping[str, Any]) -> Company:
        company = self.get_company(company_id)
        cleaned = validate_company(data, partial=True).raise_for_errors()
        return self.store.update(company, **cleaned)

    def delete_company(self, company_id: int) -> None:
        company = self.get_company(company_id)
        if company.routes:
            raise ConflictError(
                "Company still operates routes",
                [f"{len(company.routes)} route(s) reference company {company_id}"],
            )
        self.store.delete(company)

class UserDirectory:
    """Read-only traveller listing for the back office"""

    def __init__(self, store: DataStore):
        self.store = store

    def list_users(self) -> List[AdminUserListItem]:
        users = self.store.find_all(User, order_by=User.created_at.desc())
        return [
            AdminUserListItem(
                id=user.id,
                name=user.name,
                email=user.email,
                phone=user.phone,
                has_password=bool(user.password),
                booking_count=len(user.bookings),
                created_at=user.created_at,
            )
            for user in users
        ]
