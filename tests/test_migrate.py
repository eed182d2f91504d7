import os
import sys
from pathlib import Path

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from buyback.crud.assets import delete_asset, list_all_assets, list_assets
from buyback.db.migrate import run_migrations
from buyback.models import asset as asset_model  # noqa: F401

LEGACY_TABLE = """
CREATE TABLE assets (
    id VARCHAR(36) PRIMARY KEY,
    pc_name TEXT NOT NULL,
    employee_number TEXT NOT NULL,
    username TEXT NOT NULL,
    serial_number TEXT NOT NULL,
    mac_address TEXT NOT NULL,
    buyback_status TEXT NOT NULL,
    date DATE NOT NULL,
    created_at TEXT NOT NULL
)
"""


def test_legacy_table_gains_audit_columns(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        conn.execute(text(LEGACY_TABLE))
        conn.execute(
            text(
                "INSERT INTO assets VALUES ('a-1', 'PC-1', 'E1', 'u1', 'SN1', "
                "'00:1A:2B:3C:4D:01', 'Pending', '2025-11-12', '2025-11-12T08:00:00.000Z')"
            )
        )

    run_migrations(engine)
    run_migrations(engine)

    columns = {c["name"] for c in inspect(engine).get_columns("assets")}
    assert {"updated_at", "status_log"} <= columns

    session = sessionmaker(bind=engine)()
    try:
        (asset,) = list_assets(session)
        assert asset.status_log == "Active"
        assert asset.updated_at == "2025-11-12T08:00:00.000Z"
        assert delete_asset(session, "a-1") is True
        assert [a.status_log for a in list_all_assets(session)] == ["Deleted"]
    finally:
        session.close()


def test_missing_table_is_left_for_create_all(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
    run_migrations(engine)
    assert not inspect(engine).has_table("assets")
