"""Excel export and import for assets.

Export writes one row per asset (deleted ones included for the audit sheet,
shown in red). Import reads the first worksheet back with the same column
names and applies each row on its own: a bad row is reported and skipped,
it never aborts the batch and never rolls back rows already written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, Iterable, Iterator
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.dates import format_timestamp
from ..core.errors import AssetError, BatchRowError, NotFoundError, ValidationError
from ..crud.assets import create_asset, update_asset
from ..models.asset import STATUS_LOG_DELETED, Asset
from ..schemas.asset import AssetIn, validate_asset

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (header, width) in export order.
EXPORT_COLUMNS: list[tuple[str, int]] = [
    ("ID", 36),
    ("PC Name", 20),
    ("Employee Number", 15),
    ("Username", 15),
    ("Serial Number", 20),
    ("MAC Address", 20),
    ("Buyback Status", 15),
    ("Date", 20),
    ("Created At", 20),
    ("Updated At", 20),
    ("Status", 10),
]

# Spreadsheet header -> camelCase record key understood by ``validate_asset``.
IMPORT_COLUMNS: dict[str, str] = {
    "PC Name": "pcName",
    "Employee Number": "employeeNumber",
    "Username": "username",
    "Serial Number": "serialNumber",
    "MAC Address": "macAddress",
    "Buyback Status": "buybackStatus",
    "Date": "date",
}

# Real date cells keep the full year; the format only controls what is shown.
DATE_COLUMN = 8
DATE_NUMBER_FORMAT = 'dd-mm-yy "|" hh:mm AM/PM'

DELETED_FONT = Font(color="FFFF0000")
HEADER_FONT = Font(bold=True)


def export_filename(today: date | None = None) -> str:
    return f"assets-{(today or date.today()).isoformat()}.xlsx"


def asset_row(asset: Asset, tz: str | None = None) -> list[Any]:
    return [
        asset.id,
        asset.pc_name,
        asset.employee_number,
        asset.username,
        asset.serial_number,
        asset.mac_address,
        asset.buyback_status,
        datetime(asset.date.year, asset.date.month, asset.date.day),
        format_timestamp(asset.created_at, tz),
        format_timestamp(asset.updated_at, tz),
        asset.status_log,
    ]


def export_workbook(assets: Iterable[Asset], *, tz: str | None = None, sheet_name: str | None = None) -> bytes:
    """Render ``assets`` as an .xlsx document and return its bytes."""

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name or settings.EXPORT_SHEET_NAME

    ws.append([header for header, _ in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = HEADER_FONT
    for index, (_, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width

    count = 0
    for asset in assets:
        ws.append(asset_row(asset, tz))
        ws.cell(row=ws.max_row, column=DATE_COLUMN).number_format = DATE_NUMBER_FORMAT
        count += 1
        if asset.status_log == STATUS_LOG_DELETED:
            for cell in ws[ws.max_row]:
                cell.font = DELETED_FONT

    buffer = BytesIO()
    wb.save(buffer)
    logger.info("assets.exported", extra={"extra_data": {"rows": count}})
    return buffer.getvalue()


@dataclass(frozen=True)
class ParsedRow:
    """A spreadsheet row that passed validation and is ready to be stored."""

    row: int
    asset_id: str | None
    payload: AssetIn


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: list[BatchRowError] = field(default_factory=list)

    def record_failure(self, error: BatchRowError) -> None:
        self.failed += 1
        self.errors.append(error)

    def as_dict(self) -> dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "errors": [str(e) for e in self.errors]}


def _header(value: Any) -> str:
    return " ".join(str(value).split()) if value is not None else ""


def _cell_text(value: Any) -> Any:
    # Numeric cells (employee numbers typed as numbers) come back as int/float.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def read_rows(content: bytes) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield ``(sheet_row_number, {header: value})`` for each non-blank data row.

    Row numbers are the worksheet's own, so the first data row is 2 and blank
    rows still count.
    """

    try:
        wb = load_workbook(BytesIO(content), data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as exc:
        raise ValidationError(["data"], "File is not a readable .xlsx workbook") from exc
    if not wb.worksheets:
        return
    ws = wb.worksheets[0]
    rows = ws.iter_rows(min_row=1, max_row=ws.max_row, values_only=True)
    header_row = next(rows, None)
    if header_row is None:
        return
    headers = [_header(value) for value in header_row]
    for row_number, values in enumerate(rows, start=2):
        if not any(value not in (None, "") for value in values):
            continue
        yield row_number, {h: v for h, v in zip(headers, values) if h}


def parse_row(row_number: int, row: dict[str, Any]) -> ParsedRow | BatchRowError:
    """Map one sheet row onto a validated record, or describe why it cannot be."""

    candidate = {key: _cell_text(row.get(header)) for header, key in IMPORT_COLUMNS.items()}
    raw_id = row.get("ID")
    asset_id = str(raw_id).strip() if raw_id is not None else ""
    try:
        payload = validate_asset(candidate)
    except ValidationError as exc:
        return BatchRowError(row_number, exc.message)
    return ParsedRow(row_number, asset_id or None, payload)


def apply_row(db: Session, parsed: ParsedRow) -> Asset:
    """Update the asset named by the row's ID, or create a new one."""

    if parsed.asset_id:
        # Audit exports carry deleted rows too; they are updated, not revived.
        asset = update_asset(db, parsed.asset_id, parsed.payload, include_deleted=True)
        if asset is None:
            raise NotFoundError(parsed.asset_id)
        return asset
    return create_asset(db, parsed.payload)


def import_workbook(db: Session, content: bytes) -> ImportResult:
    """Apply every row of the workbook and summarise what happened.

    Duplicate detection is deliberately not applied here: imports are used for
    bulk corrections of records that already exist.
    """

    result = ImportResult()
    for row_number, row in read_rows(content):
        parsed = parse_row(row_number, row)
        if isinstance(parsed, BatchRowError):
            result.record_failure(parsed)
            logger.warning("assets.import_row_invalid", extra={"extra_data": {"row": row_number}})
            continue
        try:
            apply_row(db, parsed)
        except AssetError as exc:
            result.record_failure(BatchRowError(row_number, exc.message))
            logger.warning(
                "assets.import_row_failed",
                extra={"extra_data": {"row": row_number, "code": exc.code}},
            )
            continue
        result.success += 1

    logger.info(
        "assets.imported",
        extra={"extra_data": {"success": result.success, "failed": result.failed}},
    )
    return result
