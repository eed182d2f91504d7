import os
import sys
from datetime import date, datetime
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from buyback.core.errors import BatchRowError, ValidationError
from buyback.crud.assets import create_asset, delete_asset, get_asset, list_all_assets, list_assets
from buyback.db.session import Base
from buyback.models import asset as asset_model  # noqa: F401
from buyback.schemas.asset import validate_asset
from buyback.services.spreadsheet import (
    DATE_NUMBER_FORMAT,
    EXPORT_COLUMNS,
    ParsedRow,
    export_filename,
    export_workbook,
    import_workbook,
    parse_row,
)

HEADERS = ["ID", "PC Name", "Employee Number", "Username", "Serial Number", "MAC Address", "Buyback Status", "Date"]


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_payload(n, **overrides):
    data = {
        "pcName": f"PC-{n}",
        "employeeNumber": f"E{n}",
        "username": f"user{n}",
        "serialNumber": f"SN{n}",
        "macAddress": f"00:1A:2B:3C:4D:{n:02d}",
        "buybackStatus": "Pending",
        "date": "2025-11-12T23:00:00.000Z",
    }
    data.update(overrides)
    return validate_asset(data)


def build_workbook(rows, headers=HEADERS) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def read_sheet(content: bytes):
    return load_workbook(BytesIO(content)).active


def test_export_layout_and_formats(db_session):
    asset = create_asset(db_session, make_payload(1, buybackStatus="Approved"))

    ws = read_sheet(export_workbook(list_assets(db_session), tz="UTC"))

    assert ws.title == "Assets"
    assert [c.value for c in ws[1]] == [h for h, _ in EXPORT_COLUMNS]
    assert ws[1][0].font.bold
    row = [c.value for c in ws[2]]
    assert row[:7] == [asset.id, "PC-1", "E1", "user1", "SN1", "00:1A:2B:3C:4D:01", "Approved"]
    assert row[7] == datetime(2025, 11, 12)
    assert ws.cell(row=2, column=8).number_format == DATE_NUMBER_FORMAT
    assert row[10] == "Active"
    assert ws.column_dimensions["A"].width == 36


def test_export_marks_deleted_rows_in_red(db_session):
    create_asset(db_session, make_payload(1))
    gone = create_asset(db_session, make_payload(2))
    delete_asset(db_session, gone.id)

    ws = read_sheet(export_workbook(list_all_assets(db_session)))

    statuses = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=11).value for r in range(2, ws.max_row + 1)}
    assert statuses[gone.id] == "Deleted"
    deleted_row = next(r for r in range(2, ws.max_row + 1) if ws.cell(row=r, column=1).value == gone.id)
    active_row = 5 - deleted_row
    assert ws.cell(row=deleted_row, column=2).font.color.rgb == "FFFF0000"
    assert ws.cell(row=active_row, column=2).font.color is None or ws.cell(row=active_row, column=2).font.color.rgb != "FFFF0000"


def test_export_filename_uses_day():
    assert export_filename(date(2025, 11, 12)) == "assets-2025-11-12.xlsx"


def test_round_trip_keeps_ids_and_created_at(db_session):
    for n in range(1, 4):
        create_asset(db_session, make_payload(n))
    gone = create_asset(db_session, make_payload(4))
    delete_asset(db_session, gone.id)
    before = {a.id: (a.created_at, a.date, a.pc_name, a.status_log) for a in list_all_assets(db_session)}

    result = import_workbook(db_session, export_workbook(list_all_assets(db_session)))

    assert result.as_dict() == {"success": 4, "failed": 0, "errors": []}
    after = {a.id: (a.created_at, a.date, a.pc_name, a.status_log) for a in list_all_assets(db_session)}
    assert after == before


def test_round_trip_keeps_dates_outside_two_digit_year_window(db_session):
    late = create_asset(db_session, make_payload(1, date="2070-03-01"))
    early = create_asset(db_session, make_payload(2, date="1950-07-04"))

    result = import_workbook(db_session, export_workbook(list_all_assets(db_session)))

    assert result.as_dict() == {"success": 2, "failed": 0, "errors": []}
    assert get_asset(db_session, late.id).date == date(2070, 3, 1)
    assert get_asset(db_session, early.id).date == date(1950, 7, 4)


def test_store_read_failure_fails_only_that_row(db_session, monkeypatch):
    first = create_asset(db_session, make_payload(1))
    second = create_asset(db_session, make_payload(2))
    content = export_workbook(list_assets(db_session))
    real_get = db_session.get
    calls = {"n": 0}

    def flaky_get(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("SELECT", {}, Exception("db down"))
        return real_get(*args, **kwargs)

    monkeypatch.setattr(db_session, "get", flaky_get)

    result = import_workbook(db_session, content)

    assert result.success == 1
    assert result.failed == 1
    assert result.as_dict()["errors"] == ["Row 2: Failed to load asset"]
    assert get_asset(db_session, second.id) is not None
    assert get_asset(db_session, first.id).created_at == first.created_at


def test_rows_without_id_are_created(db_session):
    content = build_workbook([
        [None, "PC-9", "E9", "user9", "SN9", "00-1A-2B-3C-4D-09", "In Process", "2025-01-31"],
    ])

    result = import_workbook(db_session, content)

    assert result.success == 1
    (asset,) = list_assets(db_session)
    assert asset.pc_name == "PC-9"
    assert asset.date == date(2025, 1, 31)


def test_rows_with_id_update_in_place(db_session):
    asset = create_asset(db_session, make_payload(1))
    content = build_workbook([
        [asset.id, "PC-RENAMED", "E1", "user1", "SN1", "00:1A:2B:3C:4D:01", "Completed", datetime(2025, 2, 1)],
    ])

    result = import_workbook(db_session, content)

    assert result.success == 1
    refreshed = get_asset(db_session, asset.id)
    assert refreshed.pc_name == "PC-RENAMED"
    assert refreshed.buyback_status == "Completed"
    assert refreshed.date == date(2025, 2, 1)
    assert refreshed.created_at == asset.created_at


def test_invalid_mac_fails_only_its_row(db_session):
    content = build_workbook([
        [None, "PC-1", "E1", "user1", "SN1", "00:1A:2B:3C:4D:01", "Pending", "2025-11-12"],
        [None, "PC-2", "E2", "user2", "SN2", "00:1A:2B:3C:4D:02", "Pending", "2025-11-12"],
        [None, "PC-3", "E3", "user3", "SN3", "GG:1A:2B:3C:4D:5E", "Pending", "2025-11-12"],
        [None, "PC-4", "E4", "user4", "SN4", "00:1A:2B:3C:4D:04", "Pending", "2025-11-12"],
    ])

    result = import_workbook(db_session, content)

    assert result.success == 3
    assert result.failed == 1
    assert len(result.errors) == 1
    message = result.as_dict()["errors"][0]
    assert message.startswith("Row 4: ")
    assert "macAddress" in message
    assert len(list_assets(db_session)) == 3


def test_unknown_id_and_bad_date_are_reported(db_session):
    content = build_workbook([
        ["no-such-id", "PC-1", "E1", "user1", "SN1", "00:1A:2B:3C:4D:01", "Pending", "2025-11-12"],
        [None, "PC-2", "E2", "user2", "SN2", "00:1A:2B:3C:4D:02", "Pending", "someday"],
    ])

    result = import_workbook(db_session, content)

    assert result.success == 0
    assert result.failed == 2
    errors = result.as_dict()["errors"]
    assert errors[0] == "Row 2: Asset no-such-id not found"
    assert errors[1].startswith("Row 3: date")


def test_numeric_cells_and_blank_rows(db_session):
    content = build_workbook([
        [None, "PC-1", 1001, "user1", "SN1", "00:1A:2B:3C:4D:01", "Pending", "2025-11-12"],
        [None, None, None, None, None, None, None, None],
        [None, "PC-2", "E2", "user2", "SN2", "00:1A:2B:3C:4D:02", "Pending", "bad"],
    ])

    result = import_workbook(db_session, content)

    assert result.success == 1
    assert result.as_dict()["errors"][0].startswith("Row 4: ")
    assert list_assets(db_session)[0].employee_number == "1001"


def test_import_does_not_gate_on_duplicates(db_session):
    create_asset(db_session, make_payload(1))
    content = build_workbook([
        [None, "PC-1", "E1", "user1", "SN1", "00:1A:2B:3C:4D:01", "Pending", "2025-11-12"],
    ])
    assert import_workbook(db_session, content).success == 1
    assert len(list_assets(db_session)) == 2


def test_parse_row_returns_tagged_result():
    good = parse_row(2, dict(zip(HEADERS, [" ", "PC-1", "E1", "u", "S", "00:1A:2B:3C:4D:01", "Pending", "2025-11-12"])))
    bad = parse_row(3, {"PC Name": "PC-1"})

    assert isinstance(good, ParsedRow)
    assert good.asset_id is None
    assert isinstance(bad, BatchRowError)
    assert bad.row == 3
    assert str(bad).startswith("Row 3: ")


def test_unreadable_workbook_is_a_validation_error(db_session):
    with pytest.raises(ValidationError) as excinfo:
        import_workbook(db_session, b"not a spreadsheet")
    assert excinfo.value.fields == ["data"]
