"""
Bulk import of services and staff from CSV uploads

The format is deliberately naive: rows are split on newlines and fields on
commas. Quoted fields and embedded commas are not supported.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException

from ...shared.validators import parse_leading_int

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {
    "services": ["name", "duration", "price", "category"],
    "staff": ["name", "email", "role"],
}
PREVIEW_ROWS = 3


class CSVImportError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)


def check_upload(filename: Optional[str], content_type: Optional[str]) -> None:
    if content_type != "text/csv" and not (filename or "").endswith(".csv"):
        raise CSVImportError("Please select a valid CSV file")


def parse_csv(text: str, kind: str) -> dict[str, Any]:
    """
    Parse an uploaded CSV body.

    Returns:
        {headers, data (first rows for preview), total_rows, rows}
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        raise CSVImportError("CSV file must have at least a header row and one data row")

    headers = [h.strip().lower() for h in lines[0].split(",")]
    missing = [column for column in REQUIRED_COLUMNS[kind] if column not in headers]
    if missing:
        raise CSVImportError(f"Missing required columns: {', '.join(missing)}")

    rows = []
    for line in lines[1:]:
        values = [v.strip() for v in line.split(",")]
        rows.append({header: values[i] if i < len(values) else "" for i, header in enumerate(headers)})

    return {
        "headers": headers,
        "data": rows[:PREVIEW_ROWS],
        "total_rows": len(rows),
        "rows": rows,
    }


def _int_or(value: Any, default: int) -> int:
    # Zero and unparseable both fall back to the default
    return parse_leading_int(value) or default


def rows_to_services(rows: list[dict[str, str]]) -> list[dict[str, Any]]:
    return [
        {
            "name": row.get("name") or "",
            "duration": _int_or(row.get("duration"), 30),
            "price": _int_or(row.get("price"), 0),
            "category": row.get("category") or "Other",
            "bufferBeforeMin": _int_or(row.get("bufferbeforemin"), 0),
            "bufferAfterMin": _int_or(row.get("bufferaftermin"), 0),
        }
        for row in rows
    ]


def rows_to_staff(rows: list[dict[str, str]], owner_email: Optional[str] = None) -> list[dict[str, Any]]:
    staff = []
    for row in rows:
        assigned = row.get("servicesassigned") or ""
        member = {
            "name": row.get("name") or "",
            "email": row.get("email") or "",
            "role": row.get("role") or "Stylist",
            "servicesAssigned": [s.strip() for s in assigned.split(";") if s.strip()],
            "calendarConnected": False,
        }
        if owner_email and member["email"].lower() == owner_email.lower():
            member["role"] = "Owner-Admin"
        staff.append(member)
    return staff


def merge_services(existing: list[dict], incoming: list[dict]) -> list[dict]:
    """Append imported services, rejecting names already on the list"""
    names = {s.get("name", "").lower() for s in existing}
    duplicates = [s for s in incoming if s["name"].lower() in names]
    if duplicates:
        raise CSVImportError(
            f"Duplicate services found: {', '.join(s['name'] for s in duplicates)}"
        )
    logger.info(f"✅ Imported {len(incoming)} services from CSV")
    return [*existing, *incoming]


def merge_staff(existing: list[dict], incoming: list[dict]) -> list[dict]:
    """Append imported staff, rejecting emails already on the list"""
    emails = {s.get("email", "").lower() for s in existing}
    duplicates = [s for s in incoming if s["email"].lower() in emails]
    if duplicates:
        raise CSVImportError(
            f"Duplicate staff found: {', '.join(s['email'] for s in duplicates)}"
        )
    logger.info(f"✅ Imported {len(incoming)} staff members from CSV")
    return [*existing, *incoming]
