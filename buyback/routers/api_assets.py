from __future__ import annotations

import base64
import binascii
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..crud.assets import (
    create_asset,
    delete_asset,
    get_asset,
    list_assets,
    update_asset,
    update_asset_status,
)
from ..db.session import get_db
from ..schemas.asset import (
    AssetIn,
    AssetOut,
    DuplicateCheckOut,
    ImportRequest,
    ImportResultOut,
    StatusLinkOut,
    StatusUpdate,
)
from ..services.duplicates import check_duplicates
from ..services.spreadsheet import XLSX_MEDIA_TYPE, export_filename, export_workbook, import_workbook
from ..services.status_links import build_status_url
from ..services.transitions import allowed_targets, check_status_transition

router = APIRouter(prefix="/api/assets", tags=["assets"])


def _require_asset(db: Session, asset_id: str):
    asset = get_asset(db, asset_id)
    if asset is None:
        raise NotFoundError(asset_id)
    return asset


@router.get("", response_model=list[AssetOut])
def api_list(include_deleted: bool = False, db: Session = Depends(get_db)):
    return list_assets(db, include_deleted=include_deleted)


# Declared before "/{asset_id}" so "export" is not taken for an id.
@router.get("/export/excel")
def api_export_excel(
    tz: str | None = Query(default=None, description="IANA zone for Created At / Updated At"),
    include_deleted: bool = True,
    db: Session = Depends(get_db),
):
    if tz:
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError(["tz"], f"Unknown timezone: {tz}") from exc
    content = export_workbook(list_assets(db, include_deleted=include_deleted), tz=tz)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={export_filename()}"},
    )


@router.post("/import/excel", response_model=ImportResultOut)
def api_import_excel(payload: ImportRequest, db: Session = Depends(get_db)):
    """Apply a base64-encoded workbook row by row.

    Errors are reported as ``Row N`` using the worksheet row number: the header
    is row 1 and blank rows are skipped but still counted. Older reports counted
    only non-blank rows, so their numbers can be lower when a sheet has gaps.
    """

    if not payload.data:
        raise ValidationError(["data"], "No file data provided")
    try:
        content = base64.b64decode(payload.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(["data"], "File data is not valid base64") from exc
    return import_workbook(db, content).as_dict()


@router.post("/check-duplicates", response_model=DuplicateCheckOut)
def api_check_duplicates(payload: AssetIn, exclude_id: str | None = None, db: Session = Depends(get_db)):
    result = check_duplicates(payload, list_assets(db), exclude_id=exclude_id)
    return DuplicateCheckOut(
        is_duplicate=result.is_duplicate,
        duplicate_fields=result.duplicate_labels,
        colliding_records=[AssetOut.model_validate(a) for a in result.colliding_records],
    )


@router.get("/{asset_id}", response_model=AssetOut)
def api_get(asset_id: str, db: Session = Depends(get_db)):
    return _require_asset(db, asset_id)


@router.get("/{asset_id}/status-link", response_model=StatusLinkOut)
def api_status_link(asset_id: str, db: Session = Depends(get_db)):
    asset = _require_asset(db, asset_id)
    return StatusLinkOut(
        asset_id=asset.id,
        url=build_status_url(asset.id),
        current_status=asset.buyback_status,
        allowed_statuses=allowed_targets(asset.buyback_status),
    )


@router.post("", response_model=AssetOut, status_code=201)
def api_create(payload: AssetIn, db: Session = Depends(get_db)):
    return create_asset(db, payload)


@router.put("/{asset_id}", response_model=AssetOut)
def api_update(asset_id: str, payload: AssetIn, db: Session = Depends(get_db)):
    asset = update_asset(db, asset_id, payload)
    if asset is None:
        raise NotFoundError(asset_id)
    return asset


@router.patch("/{asset_id}/status", response_model=AssetOut)
def api_update_status(asset_id: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    asset = _require_asset(db, asset_id)
    target = check_status_transition(asset.buyback_status, payload.status)
    return update_asset_status(db, asset_id, target)


@router.delete("/{asset_id}", status_code=204)
def api_delete(asset_id: str, db: Session = Depends(get_db)):
    if not delete_asset(db, asset_id):
        raise NotFoundError(asset_id)
    return Response(status_code=204)
