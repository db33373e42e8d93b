"""Pydantic request/response models for the report HTTP API.

Separated from the route modules to keep routing logic distinct from data
contracts.  Field names follow the camelCase wire format.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class GenerateReportRequest(BaseModel):
    """``POST /api/reports/generate`` body.

    Fields are left untyped; presence, type and format are checked by the
    orchestrator so a malformed body answers 400 like any other invalid request.
    """

    model_config = ConfigDict(extra="ignore")

    siteId: Any = None
    fromDate: Any = None
    toDate: Any = None
    reportType: Any = None
    generatedBy: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    worker_pool: dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    siteId: str
    reportType: str
    fromDate: str
    toDate: str
    generatedAt: str
    generatedBy: str
    status: str
    filePath: str | None = None
    errorMessage: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class GenerateReportResponse(BaseModel):
    message: str
    filePath: str
    report: ReportResponse
    alertCount: int
    interventionCount: int
    maintenanceCount: int
    pageCount: int


class DeleteReportResponse(BaseModel):
    id: str
    status: str
