from __future__ import annotations

from urllib.parse import quote

from ..core.config import settings


def build_status_url(asset_id: str, base_url: str | None = None) -> str:
    """URL of the status page for ``asset_id``; this is what the QR code encodes."""

    root = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")
    return f"{root}/status/{quote(str(asset_id), safe='')}"
