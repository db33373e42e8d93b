"""Report generation, listing, lookup, PDF download and delete endpoints."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse

from ..api_models import (
    DeleteReportResponse,
    GenerateReportRequest,
    GenerateReportResponse,
    ReportResponse,
)
from ..domain_models import parse_query_range
from ..errors import ReportError
from ..report_store import STATUS_COMPLETE
from ._helpers import async_require_report, http_error, safe_filename

if TYPE_CHECKING:
    from ..app import RuntimeState

LOGGER = logging.getLogger(__name__)


def create_report_routes(state: RuntimeState) -> APIRouter:
    router = APIRouter()

    # -- generation ------------------------------------------------------------

    @router.post(
        "/api/reports/generate",
        response_model=GenerateReportResponse,
        status_code=201,
    )
    async def generate_report(req: GenerateReportRequest) -> dict[str, Any]:
        try:
            return await state.orchestrator.generate(req.model_dump())
        except ReportError as exc:
            raise http_error(exc) from exc

    # -- listing ---------------------------------------------------------------

    @router.get("/api/reports/date-range/{site_id}", response_model=list[ReportResponse])
    async def get_reports_by_date_range(
        site_id: str,
        fromDate: str | None = Query(default=None),
        toDate: str | None = Query(default=None),
    ) -> list[dict[str, Any]]:
        try:
            from_iso, to_iso = parse_query_range(fromDate, toDate)
        except ReportError as exc:
            raise http_error(exc) from exc
        return await asyncio.to_thread(
            state.report_store.list_reports_in_range, site_id, from_iso, to_iso
        )

    @router.get("/api/reports/report/{report_id}", response_model=ReportResponse)
    async def get_report(report_id: str) -> dict[str, Any]:
        return await async_require_report(state.report_store, report_id)

    @router.get("/api/reports/report/{report_id}/pdf")
    async def download_report_pdf(report_id: str) -> FileResponse:
        report = await async_require_report(state.report_store, report_id)
        if report["status"] != STATUS_COMPLETE:
            raise HTTPException(
                status_code=409,
                detail=f"Report is {report['status']}; no PDF available",
            )
        path = Path(report["filePath"] or "")
        if not report["filePath"] or not path.is_file():
            LOGGER.warning("PDF for report %s missing at %s", report_id, path)
            raise HTTPException(status_code=404, detail="Report file not found")
        return FileResponse(
            path,
            media_type="application/pdf",
            filename=safe_filename(path.name),
        )

    @router.get("/api/reports/{site_id}", response_model=list[ReportResponse])
    async def get_site_reports(site_id: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(state.report_store.list_reports, site_id)

    # -- delete ----------------------------------------------------------------

    @router.delete("/api/reports/{report_id}", response_model=DeleteReportResponse)
    async def delete_report(report_id: str) -> dict[str, str]:
        deleted = await asyncio.to_thread(state.report_store.delete_report, report_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Report not found")
        LOGGER.info("Deleted report %s", report_id)
        return {"id": report_id, "status": "deleted"}

    return router
