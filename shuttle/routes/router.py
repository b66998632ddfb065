from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional
import io

from shuttle.admin.dependencies import get_current_admin
from shuttle.database import get_db
from shuttle.exceptions import ValidationError
from shuttle.models import Admin
from shuttle.routes.csv_service import CsvBatchImporter, export_routes_csv, parse_csv
from shuttle.routes.schemas import (
    CsvImportReport, CsvUpdateReport, RouteCreate, RouteOut, RouteUpdate
)
from shuttle.routes.service import RouteService
from shuttle.store import DataStore

router = APIRouter()

def _read_csv_upload(file: UploadFile):
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise ValidationError(["Only CSV files are supported"], "Failed to process CSV file")
    return parse_csv(file.file.read())

@router.get("", response_model=List[RouteOut])
def search_routes(
    departure: Optional[str] = Query(None),
    arrival: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Search routes by departure and/or arrival"""
    return RouteService(DataStore(db)).search_routes(departure, arrival)

@router.get("/export-csv")
def export_routes(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Download every route as CSV"""
    routes = RouteService(DataStore(db)).search_routes()
    content = export_routes_csv(routes)
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=routes.csv"}
    )

@router.post("/import-csv", response_model=CsvImportReport)
def import_routes(
    file: UploadFile = File(...),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Create routes from an uploaded CSV; failing rows are reported, not fatal"""
    rows = _read_csv_upload(file)
    return CsvBatchImporter(DataStore(db)).import_rows(rows)

@router.post("/update-csv", response_model=CsvUpdateReport)
def update_routes(
    file: UploadFile = File(...),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Partially update routes from an uploaded CSV keyed by the id column"""
    rows = _read_csv_upload(file)
    return CsvBatchImporter(DataStore(db)).update_rows(rows)

@router.get("/{route_id}", response_model=RouteOut)
def get_route(route_id: int, db: Session = Depends(get_db)):
    return RouteService(DataStore(db)).get_route(route_id)

@router.post("", response_model=RouteOut, status_code=status.HTTP_201_CREATED)
def create_route(
    route: RouteCreate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Create a route"""
    return RouteService(DataStore(db)).create_route(route.model_dump(exclude_unset=True))

@router.patch("/{route_id}", response_model=RouteOut)
def update_route(
    route_id: int,
    route: RouteUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Update the fields sent in the body"""
    return RouteService(DataStore(db)).update_route(route_id, route.model_dump(exclude_unset=True))

@router.delete("/{route_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_route(
    route_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    RouteService(DataStore(db)).delete_route(route_id)
