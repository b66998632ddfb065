from typing import List, Optional, Union
from datetime import datetime

from shuttle.schemas import ApiModel

class RouteReference(ApiModel):
    """Route as referenced by a booking request: an id, or the fields describing the trip"""
    id: Optional[Union[int, str]] = None
    provider: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    origin: Optional[str] = None  # alias of departure sent by the search page
    destination: Optional[str] = None  # alias of arrival
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    price: Optional[Union[float, str]] = None
    seats: Optional[Union[int, str]] = None
    vehicle_type: Optional[str] = None

class RouteCreate(ApiModel):
    """Admin route creation request; field rules live in shuttle.security.validation"""
    provider: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    price: Optional[Union[float, str]] = None
    seats: Optional[Union[int, str]] = None
    vehicle_type: Optional[str] = None
    company_id: Optional[Union[int, str]] = None

class RouteUpdate(RouteCreate):
    """Admin route update request; only the fields sent are changed"""
    pass

class RouteOut(ApiModel):
    id: int
    provider: str
    departure: str
    arrival: str
    departure_time: datetime
    arrival_time: datetime
    price: float
    vehicle_type: Optional[str] = None
    seats: Optional[int] = None
    company_id: Optional[int] = None

# CSV bulk operations
class CsvRowError(ApiModel):
    row: int  # 1-based line number in the file, header included
    reason: str

class CsvImportReport(ApiModel):
    imported: int = 0
    failed: int = 0
    errors: List[CsvRowError] = []

class CsvUpdateReport(ApiModel):
    updated: int = 0
    failed: int = 0
    errors: List[CsvRowError] = []
