# buyback/crud/assets.py
"""Record store for assets.

Every function takes the session explicitly; nothing here holds global state.
Reads skip soft-deleted rows unless ``include_deleted`` is passed. Writes never
touch ``id`` or ``created_at`` after creation and always bump ``updated_at``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.dates import utc_now_iso
from ..core.errors import StoreError
from ..models.asset import STATUS_LOG_ACTIVE, STATUS_LOG_DELETED, Asset
from ..schemas.asset import AssetIn, BuybackStatus

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = (
    "pc_name",
    "employee_number",
    "username",
    "serial_number",
    "mac_address",
    "buyback_status",
    "date",
)


@contextmanager
def _store_errors(db: Session, action: str) -> Iterator[None]:
    """Turn any SQLAlchemy failure, read or write, into ``StoreError``."""

    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("asset.store_failed", extra={"extra_data": {"action": action}})
        raise StoreError(f"Failed to {action} asset") from exc


def _commit(db: Session, action: str, asset: Asset | None = None) -> None:
    with _store_errors(db, action):
        db.commit()
        if asset is not None:
            db.refresh(asset)


def list_assets(db: Session, *, include_deleted: bool = False) -> list[Asset]:
    """Return assets ordered oldest first; soft-deleted ones only on request."""

    stmt = select(Asset).order_by(Asset.created_at, Asset.id)
    if not include_deleted:
        stmt = stmt.where(Asset.status_log == STATUS_LOG_ACTIVE)
    with _store_errors(db, "list"):
        return list(db.execute(stmt).scalars().all())


def list_all_assets(db: Session) -> list[Asset]:
    """Audit view: every asset ever created, deleted ones included."""

    return list_assets(db, include_deleted=True)


def get_asset(db: Session, asset_id: str, *, include_deleted: bool = False) -> Asset | None:
    with _store_errors(db, "load"):
        asset = db.get(Asset, asset_id)
    if asset is None:
        return None
    if asset.is_deleted and not include_deleted:
        return None
    return asset


def _new_id(db: Session) -> str:
    # Soft-deleted rows keep their ids, so checking the table covers them too.
    while True:
        candidate = str(uuid4())
        with _store_errors(db, "allocate an id for"):
            taken = db.get(Asset, candidate) is not None
        if not taken:
            return candidate


def create_asset(db: Session, payload: AssetIn) -> Asset:
    now = utc_now_iso()
    asset = Asset(
        id=_new_id(db),
        created_at=now,
        updated_at=now,
        status_log=STATUS_LOG_ACTIVE,
        **payload.to_record(),
    )
    db.add(asset)
    _commit(db, "create", asset)
    logger.info("asset.created", extra={"extra_data": {"asset_id": asset.id}})
    return asset


def update_asset(db: Session, asset_id: str, payload: AssetIn, *, include_deleted: bool = False) -> Asset | None:
    """Replace every editable field; ``None`` when the id is unknown.

    A soft-deleted row is only reachable with ``include_deleted`` and stays
    deleted after the update.
    """

    asset = get_asset(db, asset_id, include_deleted=include_deleted)
    if asset is None:
        return None
    record = payload.to_record()
    for field in _WRITABLE_FIELDS:
        setattr(asset, field, record[field])
    asset.updated_at = utc_now_iso()
    _commit(db, "update", asset)
    logger.info("asset.updated", extra={"extra_data": {"asset_id": asset.id}})
    return asset


def update_asset_status(db: Session, asset_id: str, status: BuybackStatus) -> Asset | None:
    asset = get_asset(db, asset_id)
    if asset is None:
        return None
    asset.buyback_status = BuybackStatus(status).value
    asset.updated_at = utc_now_iso()
    _commit(db, "update status of", asset)
    logger.info(
        "asset.status_updated",
        extra={"extra_data": {"asset_id": asset.id, "status": asset.buyback_status}},
    )
    return asset


def delete_asset(db: Session, asset_id: str) -> bool:
    """Mark an active asset as deleted; ``False`` if there is nothing to delete."""

    asset = get_asset(db, asset_id)
    if asset is None:
        return False
    asset.status_log = STATUS_LOG_DELETED
    asset.updated_at = utc_now_iso()
    _commit(db, "delete")
    logger.info("asset.deleted", extra={"extra_data": {"asset_id": asset_id}})
    return True
