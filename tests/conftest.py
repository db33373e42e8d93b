"""Shared test helpers for the netreport test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest

from netreport.collaborators import SiteRecords
from netreport.config import ReportsConfig
from netreport.domain_models import (
    AlertRecord,
    InterventionRecord,
    MaintenanceRecord,
    parse_timestamp,
)
from netreport.report.charts import ChartRenderer
from netreport.report_store import ReportStore
from netreport.worker_pool import WorkerPool

# ---------------------------------------------------------------------------
# PDF text extraction helper
# ---------------------------------------------------------------------------


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract all text from a PDF byte string using pypdf."""
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(pdf_bytes))
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def extract_pdf_pages(pdf_bytes: bytes) -> list[str]:
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(pdf_bytes))
    return [page.extract_text() or "" for page in reader.pages]


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def scenario_alerts() -> list[dict[str, Any]]:
    """Two alerts for SITE001 in January 2024: one active, one resolved."""
    return [
        {
            "_id": "a1",
            "siteId": "SITE001",
            "message": "Link down on sector 2",
            "status": "active",
            "timestamp": "2024-01-05T08:00:00Z",
            "createdAt": "2024-01-05T08:00:00Z",
        },
        {
            "_id": "a2",
            "siteId": "SITE001",
            "message": "Power fluctuation",
            "status": "resolved",
            "timestamp": "2024-01-12T14:30:00Z",
            "createdAt": "2024-01-12T14:30:00Z",
            "resolvedAt": "2024-01-12T16:00:00Z",
        },
    ]


def scenario_interventions() -> list[dict[str, Any]]:
    """Three interventions lasting 10, 20 and 30 minutes."""
    return [
        {
            "_id": "i1",
            "description": "Splice repair",
            "type": "fiber",
            "duration": 10,
            "createdAt": "2024-01-06T09:00:00Z",
        },
        {
            "_id": "i2",
            "description": "Rectifier swap",
            "type": "power",
            "duration": 20,
            "createdAt": "2024-01-13T10:00:00Z",
        },
        {
            "_id": "i3",
            "description": "Patch panel rework",
            "type": "fiber",
            "duration": 30,
            "createdAt": "2024-01-20T11:00:00Z",
        },
    ]


def scenario_request(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "siteId": "SITE001",
        "fromDate": "2024-01-01",
        "toDate": "2024-01-31",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def _in_range(value: object, from_iso: str, to_iso: str) -> bool:
    ts = parse_timestamp(value)
    if ts is None:
        return True
    lo = parse_timestamp(from_iso)
    hi = parse_timestamp(to_iso)
    return lo <= ts <= hi


@dataclass
class FakeCollaborators:
    """Stands in for :class:`CollaboratorClient`; filters by ``createdAt`` like the services do."""

    alerts: list[dict[str, Any]] = field(default_factory=list)
    interventions: list[dict[str, Any]] = field(default_factory=list)
    maintenance: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None
    calls: list[tuple[str, str, str]] = field(default_factory=list)

    async def fetch_all(self, site_id: str, from_iso: str, to_iso: str) -> SiteRecords:
        self.calls.append((site_id, from_iso, to_iso))
        if self.error is not None:
            raise self.error
        return SiteRecords(
            alerts=[
                AlertRecord.from_dict(d)
                for d in self.alerts
                if _in_range(d.get("createdAt"), from_iso, to_iso)
            ],
            interventions=[
                InterventionRecord.from_dict(d)
                for d in self.interventions
                if _in_range(d.get("createdAt"), from_iso, to_iso)
            ],
            maintenance_records=[
                MaintenanceRecord.from_dict(d)
                for d in self.maintenance
                if _in_range(d.get("createdAt"), from_iso, to_iso)
            ],
        )


class FailingChartRenderer(ChartRenderer):
    def render(self, kind: str, stats_slice: Any) -> bytes:
        raise RuntimeError(f"{kind} renderer crashed")


class UndecodableChartRenderer(ChartRenderer):
    def render(self, kind: str, stats_slice: Any) -> bytes:
        return b"not a png"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def reports_config(tmp_path: Path) -> ReportsConfig:
    return ReportsConfig(
        output_dir=tmp_path / "reports",
        supplementary_image_dir=tmp_path / "temp",
        supplementary_images=(),
        chart_workers=3,
    )


@pytest.fixture
def report_store(tmp_path: Path):
    store = ReportStore(tmp_path / "reports.db")
    yield store
    store.close()


@pytest.fixture
def worker_pool():
    pool = WorkerPool(max_workers=3, thread_name_prefix="test-chart")
    yield pool
    pool.shutdown()
