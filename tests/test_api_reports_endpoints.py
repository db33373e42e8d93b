from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import FakeCollaborators, scenario_alerts, scenario_interventions, scenario_request
from fastapi import HTTPException

from netreport.api_models import GenerateReportRequest
from netreport.errors import UpstreamFetchError
from netreport.orchestrator import ReportOrchestrator
from netreport.report.charts import ChartRenderer
from netreport.routes import create_router


def _endpoint(router, path: str, method: str):
    for route in router.routes:
        if getattr(route, "path", "") == path and method in getattr(route, "methods", set()):
            return route.endpoint
    raise AssertionError(f"{method} {path} not registered")


@pytest.fixture
def state(report_store, worker_pool, reports_config):
    state = MagicMock()
    state.report_store = report_store
    state.worker_pool = worker_pool
    state.collaborators = FakeCollaborators(
        alerts=scenario_alerts(), interventions=scenario_interventions()
    )
    state.orchestrator = ReportOrchestrator(
        store=report_store,
        collaborators=state.collaborators,
        charts=ChartRenderer(),
        pool=worker_pool,
        reports_config=reports_config,
    )
    return state


def test_report_routes_registered() -> None:
    router = create_router(MagicMock())
    routes = {(r.path, m) for r in router.routes if hasattr(r, "methods") for m in r.methods}
    assert ("/api/reports/generate", "POST") in routes
    assert ("/api/reports/{site_id}", "GET") in routes
    assert ("/api/reports/date-range/{site_id}", "GET") in routes
    assert ("/api/reports/report/{report_id}", "GET") in routes
    assert ("/api/reports/report/{report_id}/pdf", "GET") in routes
    assert ("/api/reports/{report_id}", "DELETE") in routes
    assert ("/api/health", "GET") in routes


def test_generate_route_answers_201() -> None:
    router = create_router(MagicMock())
    [route] = [r for r in router.routes if getattr(r, "path", "") == "/api/reports/generate"]
    assert route.status_code == 201


@pytest.mark.asyncio
async def test_generate_then_list_and_fetch(state) -> None:
    router = create_router(state)
    generate = _endpoint(router, "/api/reports/generate", "POST")
    result = await generate(GenerateReportRequest(**scenario_request()))
    assert result["pageCount"] == 4
    report_id = result["report"]["id"]

    listed = await _endpoint(router, "/api/reports/{site_id}", "GET")("SITE001")
    assert [r["id"] for r in listed] == [report_id]
    assert await _endpoint(router, "/api/reports/{site_id}", "GET")("OTHER") == []

    fetched = await _endpoint(router, "/api/reports/report/{report_id}", "GET")(report_id)
    assert fetched["status"] == "complete"

    response = await _endpoint(router, "/api/reports/report/{report_id}/pdf", "GET")(report_id)
    assert response.media_type == "application/pdf"
    assert Path(response.path) == Path(result["filePath"])


@pytest.mark.asyncio
async def test_generate_maps_validation_and_duplicate_errors_to_400(state) -> None:
    generate = _endpoint(create_router(state), "/api/reports/generate", "POST")

    with pytest.raises(HTTPException) as exc_info:
        await generate(GenerateReportRequest(siteId="SITE001"))
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Missing required parameters."

    await generate(GenerateReportRequest(**scenario_request()))
    with pytest.raises(HTTPException) as exc_info:
        await generate(GenerateReportRequest(**scenario_request()))
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Report already exists for this range and type."


@pytest.mark.asyncio
async def test_generate_non_string_fields_answer_400(state) -> None:
    generate = _endpoint(create_router(state), "/api/reports/generate", "POST")
    # Body parsing accepts any JSON value; the type check happens in the handler.
    req = GenerateReportRequest.model_validate(
        {"siteId": 123, "fromDate": "2024-01-01", "toDate": "2024-01-31"}
    )
    with pytest.raises(HTTPException) as exc_info:
        await generate(req)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Missing required parameters."

    req = GenerateReportRequest.model_validate(
        {"siteId": "SITE001", "fromDate": 20240101, "toDate": "2024-01-31"}
    )
    with pytest.raises(HTTPException) as exc_info:
        await generate(req)
    assert exc_info.value.status_code == 400
    assert state.report_store.list_reports("SITE001") == []


@pytest.mark.asyncio
async def test_generate_propagates_upstream_status(state) -> None:
    state.collaborators.error = UpstreamFetchError("API error: not found", upstream_status=404)
    generate = _endpoint(create_router(state), "/api/reports/generate", "POST")
    with pytest.raises(HTTPException) as exc_info:
        await generate(GenerateReportRequest(**scenario_request()))
    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == "API error: not found"


@pytest.mark.asyncio
async def test_date_range_listing(state) -> None:
    router = create_router(state)
    generate = _endpoint(router, "/api/reports/generate", "POST")
    await generate(GenerateReportRequest(**scenario_request()))
    by_range = _endpoint(router, "/api/reports/date-range/{site_id}", "GET")

    assert len(await by_range("SITE001", fromDate="2024-01-01", toDate="2024-01-31")) == 1
    assert await by_range("SITE001", fromDate="2024-01-02", toDate="2024-01-31") == []

    with pytest.raises(HTTPException) as exc_info:
        await by_range("SITE001", fromDate=None, toDate="2024-01-31")
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Invalid or missing date range"


@pytest.mark.asyncio
async def test_lookup_errors(state, report_store) -> None:
    router = create_router(state)
    get_report = _endpoint(router, "/api/reports/report/{report_id}", "GET")
    get_pdf = _endpoint(router, "/api/reports/report/{report_id}/pdf", "GET")

    with pytest.raises(HTTPException) as exc_info:
        await get_report("missing")
    assert exc_info.value.status_code == 404

    pending = report_store.claim_report(
        site_id="SITE001",
        report_type="daily",
        from_date="2024-01-01T00:00:00.000Z",
        to_date="2024-01-01T23:59:59.999Z",
        generated_by="system",
        data={},
    )
    with pytest.raises(HTTPException) as exc_info:
        await get_pdf(pending["id"])
    assert exc_info.value.status_code == 409

    report_store.mark_complete(pending["id"], "/nonexistent/report.pdf", {"pageCount": 1})
    with pytest.raises(HTTPException) as exc_info:
        await get_pdf(pending["id"])
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_delete_removes_entity_but_keeps_file(state) -> None:
    router = create_router(state)
    result = await _endpoint(router, "/api/reports/generate", "POST")(
        GenerateReportRequest(**scenario_request())
    )
    delete = _endpoint(router, "/api/reports/{report_id}", "DELETE")
    report_id = result["report"]["id"]

    assert await delete(report_id) == {"id": report_id, "status": "deleted"}
    assert Path(result["filePath"]).exists()
    with pytest.raises(HTTPException) as exc_info:
        await delete(report_id)
    assert exc_info.value.status_code == 404
