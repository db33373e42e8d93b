"""Report generation flow: validate, fetch, aggregate, persist, render, write.

One :class:`ReportOrchestrator` is shared by every request.  A single
:meth:`ReportOrchestrator.generate` call walks the states of
:class:`GenerationState` in order; a failure in any state is logged
with the state it happened in and propagated to the caller as a
:class:`~netreport.errors.ReportError`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import re
import tempfile
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .collaborators import CollaboratorClient
from .config import ReportsConfig
from .domain_models import ReportRequest, parse_timestamp
from .errors import DuplicateReportError, RenderError, ReportError, StreamError
from .report.charts import ChartRenderer
from .report.pdf_builder import draw_report_pdf, layout_report
from .report.pdf_layout import PlacedBlock
from .report.report_data import ReportTemplateData, map_report_data
from .report_store import STATUS_FAILED, ReportStore
from .stats import compute_stats
from .worker_pool import WorkerPool

LOGGER = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")

SUCCESS_MESSAGE = "Report generated successfully."


class GenerationState(enum.StrEnum):
    VALIDATING = "validating"
    CHECKING_DUPLICATE = "checking_duplicate"
    FETCHING_DATA = "fetching_data"
    AGGREGATING = "aggregating"
    PERSISTING = "persisting"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


def report_file_name(site_id: str, generated_at: datetime, report_id: str) -> str:
    """``report_{site}_{YYYY-MM-DD}_{id}.pdf`` with unsafe characters stripped."""
    name = f"report_{site_id}_{generated_at.strftime('%Y-%m-%d')}_{report_id}.pdf"
    return _UNSAFE_FILENAME_RE.sub("", name)


class ReportOrchestrator:
    def __init__(
        self,
        *,
        store: ReportStore,
        collaborators: CollaboratorClient,
        charts: ChartRenderer,
        pool: WorkerPool,
        reports_config: ReportsConfig,
    ) -> None:
        self._store = store
        self._collaborators = collaborators
        self._charts = charts
        self._pool = pool
        self._reports_config = reports_config

    # -- helpers --------------------------------------------------------------

    def _load_supplementary_images(self) -> list[tuple[str, bytes]]:
        images: list[tuple[str, bytes]] = []
        image_dir = self._reports_config.supplementary_image_dir
        for name in self._reports_config.supplementary_images:
            path = image_dir / name
            try:
                images.append((name, path.read_bytes()))
            except FileNotFoundError:
                LOGGER.warning("Supplementary image %s not found; skipping", path)
            except OSError:
                LOGGER.warning("Could not read supplementary image %s; skipping", path, exc_info=True)
        return images

    def _write_pdf(
        self, path: Path, data: ReportTemplateData, pages: list[list[PlacedBlock]]
    ) -> int:
        """Draw into a temp sibling and move it into place only once complete."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".report_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as out:
                page_count = draw_report_pdf(out, data, pages)
            os.replace(tmp, str(path))
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                LOGGER.warning("Could not remove partial report file %s", tmp)
            raise
        return page_count

    async def _mark_failed(self, report_id: str, message: str) -> None:
        try:
            await asyncio.to_thread(self._store.mark_failed, report_id, message)
        except Exception:
            LOGGER.error("Could not mark report %s as failed", report_id, exc_info=True)

    # -- flow -----------------------------------------------------------------

    async def generate(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Generate one report from a ``POST /generate`` body.

        Returns the response body on success.  Raises a ``ReportError``
        subclass carrying the HTTP status to answer with.
        """
        state = GenerationState.VALIDATING
        report_id: str | None = None
        try:
            request = ReportRequest.from_payload(payload)

            state = GenerationState.CHECKING_DUPLICATE
            existing = await asyncio.to_thread(self._store.find_report, *request.key)
            if existing is not None and existing["status"] != STATUS_FAILED:
                raise DuplicateReportError()

            state = GenerationState.FETCHING_DATA
            records = await self._collaborators.fetch_all(
                request.site_id, request.from_iso, request.to_iso
            )

            state = GenerationState.AGGREGATING
            stats = compute_stats(
                records.alerts, records.interventions, records.maintenance_records
            )

            state = GenerationState.PERSISTING
            report = await asyncio.to_thread(
                self._store.claim_report,
                site_id=request.site_id,
                report_type=request.report_type,
                from_date=request.from_iso,
                to_date=request.to_iso,
                generated_by=request.generated_by,
                data={
                    "alertStats": stats.alert_stats.to_dict(),
                    "interventionStats": stats.intervention_stats.to_persisted_dict(),
                    "additionalInfo": {},
                },
            )
            report_id = report["id"]
            generated_at = parse_timestamp(report["generatedAt"]) or datetime.now(UTC)

            state = GenerationState.RENDERING
            try:
                charts = await self._charts.render_all_async(stats, self._pool)
            except Exception as exc:
                raise RenderError(f"Chart rendering failed: {exc}") from exc
            images = await asyncio.to_thread(self._load_supplementary_images)
            template = map_report_data(
                request=request,
                stats=stats,
                alerts=records.alerts,
                interventions=records.interventions,
                maintenance_records=records.maintenance_records,
                charts=charts.in_order(),
                supplementary_images=images,
                generated_at=generated_at,
            )
            try:
                pages = await asyncio.to_thread(layout_report, template)
            except Exception as exc:
                raise RenderError(f"PDF rendering failed: {exc}") from exc

            state = GenerationState.WRITING
            path = self._reports_config.output_dir / report_file_name(
                request.site_id, generated_at, report_id
            )
            try:
                page_count = await asyncio.to_thread(self._write_pdf, path, template, pages)
            except OSError as exc:
                raise StreamError(f"Failed to write report file: {exc}") from exc
            except Exception as exc:
                raise RenderError(f"PDF rendering failed: {exc}") from exc

            completed = await asyncio.to_thread(
                self._store.mark_complete, report_id, str(path), {"pageCount": page_count}
            )
        except ReportError as exc:
            LOGGER.warning(
                "Report generation %s in state %s: %s", GenerationState.FAILED, state, exc.message
            )
            if report_id is not None:
                await self._mark_failed(report_id, exc.message)
            raise
        except Exception as exc:
            LOGGER.error(
                "Report generation %s in state %s", GenerationState.FAILED, state, exc_info=True
            )
            if report_id is not None:
                await self._mark_failed(report_id, str(exc))
            raise ReportError(f"Internal server error: {exc}") from exc

        state = GenerationState.DONE
        LOGGER.info(
            "Report %s for site %s %s (%d page(s), %s)",
            report_id,
            request.site_id,
            state,
            page_count,
            path,
        )
        return {
            "message": SUCCESS_MESSAGE,
            "filePath": str(path),
            "report": completed,
            "alertCount": len(records.alerts),
            "interventionCount": len(records.interventions),
            "maintenanceCount": len(records.maintenance_records),
            "pageCount": page_count,
        }
