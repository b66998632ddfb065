from typing import Any, Dict, Iterable, List, Mapping, Union
import io
import math

import pandas as pd

from shuttle.exceptions import AppError, ValidationError
from shuttle.models import Route
from shuttle.observability import get_logger
from shuttle.routes.schemas import CsvImportReport, CsvRowError, CsvUpdateReport
from shuttle.routes.service import RouteService
from shuttle.security.sanitization import neutralize_csv_cell, parse_number
from shuttle.security.validation import validate_route_fields
from shuttle.store import DataStore

logger = get_logger(__name__)

EXPORT_COLUMNS = [
    "id", "provider", "departure", "arrival", "departureTime", "arrivalTime",
    "price", "seats", "vehicleType", "companyId", "companyName",
]

# Header name -> route field; snake_case headers are accepted as well
COLUMN_FIELDS = {
    "id": "id",
    "provider": "provider",
    "departure": "departure",
    "arrival": "arrival",
    "departureTime": "departure_time",
    "departure_time": "departure_time",
    "arrivalTime": "arrival_time",
    "arrival_time": "arrival_time",
    "price": "price",
    "seats": "seats",
    "vehicleType": "vehicle_type",
    "vehicle_type": "vehicle_type",
    "companyId": "company_id",
    "company_id": "company_id",
}

# Row numbers in reports count the header as line 1
FIRST_DATA_ROW = 2

# Stand-in cell for a line with more fields than the header
MALFORMED_MARKER = "\x00malformed"
# Key of the placeholder record parse_csv yields for such a row
MALFORMED_ROW_KEY = "__malformed__"

def parse_csv(content: Union[bytes, str]) -> List[Dict[str, str]]:
    """Parse an uploaded CSV (UTF-8, header row required) into one dict per record.

    A line with more fields than the header does not fail the file; it yields a
    ``{MALFORMED_ROW_KEY: reason}`` placeholder in its position instead.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError(["CSV file must be UTF-8 encoded"], "Failed to process CSV file")

    wide_rows: List[int] = []

    def mark_wide_row(fields: List[str]) -> List[str]:
        wide_rows.append(len(fields))
        return [MALFORMED_MARKER]

    try:
        # header=None keeps pandas from treating the first wide row as an index column
        df = pd.read_csv(
            io.StringIO(content),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=mark_wide_row,
        )
    except pd.errors.EmptyDataError:
        raise ValidationError(["CSV file is empty"], "Failed to process CSV file")
    except pd.errors.ParserError as e:
        raise ValidationError([f"Malformed CSV: {e}"], "Failed to process CSV file")

    df = df.fillna("")
    headers = [str(value).strip() for value in df.iloc[0]]
    wide_counts = iter(wide_rows)

    rows = []
    for _, record in df.iloc[1:].iterrows():
        values = list(record)
        if values[0] == MALFORMED_MARKER:
            reason = f"Row has {next(wide_counts)} fields but the header has {len(headers)}"
            rows.append({MALFORMED_ROW_KEY: reason})
            continue
        rows.append({header: str(value).strip() for header, value in zip(headers, values)})
    return rows

def _row_fields(row: Mapping[str, Any]) -> Dict[str, Any]:
    fields = {}
    for column, value in row.items():
        field = COLUMN_FIELDS.get(column)
        if field:
            fields[field] = value
    return fields

def _failure_reason(error: Exception) -> str:
    if isinstance(error, AppError):
        if error.details:
            return "; ".join(error.details)
        return error.public_message
    return str(error) or error.__class__.__name__

class CsvBatchImporter:
    """Row-by-row route import/update with an itemized report.

    Every row is validated and persisted on its own; a failing row is recorded in the report
    and never stops the rows after it, so ``imported + failed`` (or ``updated + failed``)
    always equals the number of input rows.
    """

    def __init__(self, store: DataStore):
        self.store = store
        self.route_service = RouteService(store)

    def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> CsvImportReport:
        """Create one route per row"""
        report = CsvImportReport()

        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                if MALFORMED_ROW_KEY in row:
                    self._record_failure(report, row_number, row[MALFORMED_ROW_KEY])
                    continue

                result = validate_route_fields(_row_fields(row))
                if not result.valid:
                    self._record_failure(report, row_number, "; ".join(result.errors))
                    continue

                route = self.route_service.create_validated(result.cleaned)
                report.imported += 1
                logger.debug("CSV row imported", row=row_number, route_id=route.id)
            except Exception as e:
                self.store.rollback()
                self._record_failure(report, row_number, _failure_reason(e))

        logger.info("CSV import finished", imported=report.imported, failed=report.failed)
        return report

    def update_rows(self, rows: Iterable[Mapping[str, Any]]) -> CsvUpdateReport:
        """Partially update the route named by each row's ``id`` column"""
        report = CsvUpdateReport()

        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                if MALFORMED_ROW_KEY in row:
                    self._record_failure(report, row_number, row[MALFORMED_ROW_KEY])
                    continue

                fields = _row_fields(row)
                raw_id = fields.pop("id", None)
                if raw_id is None or not str(raw_id).strip():
                    self._record_failure(report, row_number, "Missing required field: id")
                    continue

                route_id = parse_number(raw_id)
                if not math.isfinite(route_id) or route_id < 1 or route_id != int(route_id):
                    self._record_failure(report, row_number, "Invalid route ID")
                    continue

                route = self.store.find_one(Route, id=int(route_id))
                if not route:
                    self._record_failure(report, row_number, f"Route with ID {int(route_id)} not found")
                    continue

                result = validate_route_fields(fields, partial=True)
                if not result.valid:
                    self._record_failure(report, row_number, "; ".join(result.errors))
                    continue

                self.route_service.update_validated(route, result.cleaned)
                report.updated += 1
            except Exception as e:
                self.store.rollback()
                self._record_failure(report, row_number, _failure_reason(e))

        logger.info("CSV update finished", updated=report.updated, failed=report.failed)
        return report

    def _record_failure(self, report: Union[CsvImportReport, CsvUpdateReport], row_number: int, reason: str) -> None:
        report.failed += 1
        report.errors.append(CsvRowError(row=row_number, reason=reason))
        logger.warning("CSV row rejected", row=row_number, reason=reason)

def export_routes_csv(routes: Iterable[Route]) -> str:
    """Serialize routes to CSV with formula-like text cells neutralised"""
    data = []
    for route in routes:
        data.append({
            "id": route.id,
            "provider": route.provider,
            "departure": route.departure,
            "arrival": route.arrival,
            "departureTime": route.departure_time.isoformat() if route.departure_time else "",
            "arrivalTime": route.arrival_time.isoformat() if route.arrival_time else "",
            "price": route.price,
            "seats": route.seats or 0,
            "vehicleType": route.vehicle_type or "",
            "companyId": route.company_id or "",
            "companyName": route.company.name if route.company else "",
        })

    df = pd.DataFrame(data, columns=EXPORT_COLUMNS)
    for column in ("provider", "departure", "arrival", "vehicleType", "companyName"):
        df[column] = df[column].map(neutralize_csv_cell)

    output = io.StringIO()
    df.to_csv(output, index=False)
    return output.getvalue()
