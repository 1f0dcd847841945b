from __future__ import annotations

from typing import Optional

import httpx

from .logging import logger
from .models.deck import SavedItem


class SheetExportError(RuntimeError):
    """The spreadsheet web hook rejected the row or could not be reached."""


def export_item(url: str, item: SavedItem, *, client: Optional[httpx.Client] = None, timeout: float = 10.0) -> None:
    """POST one saved item to the user's spreadsheet web hook as a JSON row.

    URL 未設定は ValueError。通信失敗・非 2xx は SheetExportError（再試行はしない）。
    """
    target = (url or "").strip()
    if not target:
        raise ValueError("sheet URL is not configured")
    if not target.startswith(("http://", "https://")):
        raise ValueError("sheet URL must be http(s)")

    payload = item.model_dump(mode="json")
    owned = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        resp = http.post(target, json=payload)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("sheet_export_failed", kind=item.kind, error=str(exc)[:200])
        raise SheetExportError(str(exc)) from exc
    finally:
        if owned:
            http.close()
    logger.info("sheet_export_ok", kind=item.kind, status_code=resp.status_code)
