from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime

from shuttle.exceptions import NotFoundError
from shuttle.models import Company, Route
from shuttle.observability import get_logger
from shuttle.security.validation import validate_route_fields
from shuttle.store import DataStore

logger = get_logger(__name__)

class RouteResolver:
    """Turns a booking's route reference into a persisted Route.

    Lookup order: identity, then the (provider, departure, arrival, price) natural key,
    then a freshly created fallback route; a reference never resolves to "not found".
    The lookup and the create are not atomic: two concurrent bookings for the same unknown
    trip can each create a fallback route.
    """

    DEFAULT_VEHICLE_TYPE = "Bus"
    DEFAULT_SEATS = 50
    UNKNOWN = "Unknown"

    def __init__(self, store: DataStore):
        self.store = store

    def resolve(self, reference: Mapping[str, Any]) -> Route:
        """Return the referenced route, creating a fallback one when nothing matches"""

        route_id = reference.get("id")
        if route_id is not None:
            route = self.store.find_one(Route, id=route_id)
            if route:
                return route

        route = self._find_by_natural_key(reference)
        if route:
            return route

        return self._create_fallback(reference)

    def _natural_key(self, reference: Mapping[str, Any]) -> Dict[str, Any]:
        """Missing parts take the same defaults a fallback route is stored with"""
        price = reference.get("price")
        return {
            "provider": reference.get("provider") or self.UNKNOWN,
            "departure": reference.get("departure") or self.UNKNOWN,
            "arrival": reference.get("arrival") or self.UNKNOWN,
            "price": price if price is not None else 0.0,
        }

    def _find_by_natural_key(self, reference: Mapping[str, Any]) -> Optional[Route]:
        return self.store.find_one(Route, **self._natural_key(reference))

    def _create_fallback(self, reference: Mapping[str, Any]) -> Route:
        now = datetime.now()
        route = self.store.create(
            Route,
            **self._natural_key(reference),
            departure_time=reference.get("departure_time") or now,
            arrival_time=reference.get("arrival_time") or now,
            vehicle_type=reference.get("vehicle_type") or self.DEFAULT_VEHICLE_TYPE,
            seats=reference.get("seats") or self.DEFAULT_SEATS,
        )
        logger.info(
            "Fallback route created",
            route_id=route.id,
            requested_route_id=reference.get("id"),
            provider=route.provider,
            departure=route.departure,
            arrival=route.arrival,
            price=route.price,
        )
        return route

class RouteService:
    """Admin CRUD and public search over routes"""

    def __init__(self, store: DataStore):
        self.store = store

    def search_routes(
        self,
        departure: Optional[str] = None,
        arrival: Optional[str] = None
    ) -> List[Route]:
        """List routes, optionally filtered by (case-insensitive) departure / arrival"""
        criteria = []
        if departure:
            criteria.append(Route.departure.ilike(f"%{departure}%"))
        if arrival:
            criteria.append(Route.arrival.ilike(f"%{arrival}%"))
        return self.store.find_all(Route, *criteria, order_by=Route.departure_time)

    def get_route(self, route_id: int) -> Route:
        route = self.store.find_one(Route, id=route_id)
        if not route:
            raise NotFoundError(f"Route with ID {route_id} not found")
        return route

    def create_route(self, data: Mapping[str, Any]) -> Route:
        """Validate every field and persist a new route"""
        cleaned = validate_route_fields(data).raise_for_errors()
        return self.create_validated(cleaned)

    def create_validated(self, cleaned: Dict[str, Any]) -> Route:
        fields = dict(cleaned)
        fields.setdefault("vehicle_type", RouteResolver.DEFAULT_VEHICLE_TYPE)
        fields.setdefault("seats", RouteResolver.DEFAULT_SEATS)
        self._check_company(fields.get("company_id"))
        return self.store.create(Route, **fields)

    def update_route(self, route_id: int, data: Mapping[str, Any]) -> Route:
        """Apply only the fields present in ``data``"""
        route = self.get_route(route_id)
        cleaned = validate_route_fields(data, partial=True).raise_for_errors()
        return self.update_validated(route, cleaned)

    def update_validated(self, route: Route, cleaned: Dict[str, Any]) -> Route:
        self._check_company(cleaned.get("company_id"))
        return self.store.update(route, **cleaned)

    def delete_route(self, route_id: int) -> None:
        route = self.get_route(route_id)
        self.store.delete(route)

    def _check_company(self, company_id: Optional[int]) -> None:
        if company_id is not None and not self.store.find_one(Company, id=company_id):
            raise NotFoundError(f"Company with ID {company_id} not found")
