"""Shared route helpers used across multiple route modules."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException

from ..errors import ReportError

if TYPE_CHECKING:
    from ..report_store import ReportStore

_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


def safe_filename(name: str) -> str:
    """Sanitize *name* for use in Content-Disposition headers."""
    return _SAFE_FILENAME_RE.sub("_", name)[:200] or "download"


def http_error(exc: ReportError) -> HTTPException:
    """Translate a report error into the HTTP error it maps to."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)


async def async_require_report(store: ReportStore, report_id: str) -> dict[str, Any]:
    """Fetch a report in a thread or raise 404."""
    report = await asyncio.to_thread(store.get_report, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report
