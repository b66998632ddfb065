"""
Routes Module

Route catalogue of the shuttle marketplace: the trips providers operate between two places,
with their times, price and vehicle.

It includes:

- Public route search
- Route resolution for bookings, with fallback-route creation when nothing matches
- Admin CRUD over routes
- CSV bulk import / partial update with per-row reports, and CSV export

Key Components:
- service.py: RouteResolver and RouteService
- csv_service.py: CSV parsing, CsvBatchImporter and export
- router.py: FastAPI endpoints for search, admin CRUD and CSV operations
- schemas.py: Pydantic models for request/response structures
"""

from .router import router
from .service import RouteResolver, RouteService
from .csv_service import CsvBatchImporter, export_routes_csv, parse_csv
from .schemas import (
    RouteReference, RouteCreate, RouteUpdate, RouteOut,
    CsvRowError, CsvImportReport, CsvUpdateReport
)

__all__ = [
    "router",
    "RouteResolver",
    "RouteService",
    "CsvBatchImporter",
    "export_routes_csv",
    "parse_csv",
    "RouteReference",
    "RouteCreate",
    "RouteUpdate",
    "RouteOut",
    "CsvRowError",
    "CsvImportReport",
    "CsvUpdateReport"
]
