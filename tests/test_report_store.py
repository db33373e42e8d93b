from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from netreport.errors import DuplicateReportError
from netreport.report_store import (
    STATUS_COMPLETE,
    STATUS_FAILED,
    STATUS_PENDING,
    ReportStore,
)

_FROM = "2024-01-01T00:00:00.000Z"
_TO = "2024-01-31T23:59:59.999Z"


def _claim(store: ReportStore, *, site_id: str = "SITE001", **overrides):
    kwargs = {
        "site_id": site_id,
        "report_type": "summary",
        "from_date": _FROM,
        "to_date": _TO,
        "generated_by": "system",
        "data": {"alertStats": {"total": 1}, "additionalInfo": {}},
    }
    kwargs.update(overrides)
    return store.claim_report(**kwargs)


def test_claim_creates_pending_report(report_store: ReportStore) -> None:
    report = _claim(report_store)
    assert report["status"] == STATUS_PENDING
    assert report["siteId"] == "SITE001"
    assert report["fromDate"] == _FROM
    assert report["generatedAt"].endswith("Z")
    assert report["filePath"] is None
    assert report["data"]["alertStats"] == {"total": 1}


def test_second_claim_for_same_key_is_duplicate(report_store: ReportStore) -> None:
    _claim(report_store)
    with pytest.raises(DuplicateReportError):
        _claim(report_store)
    assert len(report_store.list_reports("SITE001")) == 1


def test_different_report_type_is_not_duplicate(report_store: ReportStore) -> None:
    _claim(report_store)
    _claim(report_store, report_type="monthly")
    assert len(report_store.list_reports("SITE001")) == 2


def test_failed_report_can_be_reclaimed(report_store: ReportStore) -> None:
    first = _claim(report_store)
    report_store.mark_failed(first["id"], "boom")
    failed = report_store.get_report(first["id"])
    assert failed["status"] == STATUS_FAILED
    assert failed["errorMessage"] == "boom"

    again = _claim(report_store, generated_by="ops")
    assert again["id"] == first["id"]
    assert again["status"] == STATUS_PENDING
    assert again["errorMessage"] is None
    assert again["generatedBy"] == "ops"


def test_mark_complete_merges_additional_info(report_store: ReportStore) -> None:
    report = _claim(report_store, data={"additionalInfo": {"source": "api"}})
    done = report_store.mark_complete(report["id"], "/tmp/r.pdf", {"pageCount": 4})
    assert done["status"] == STATUS_COMPLETE
    assert done["filePath"] == "/tmp/r.pdf"
    assert done["data"]["additionalInfo"] == {"source": "api", "pageCount": 4}
    assert report_store.mark_complete("missing", "/x.pdf", {}) is None


def test_list_reports_newest_first_and_scoped_to_site(report_store: ReportStore) -> None:
    a = _claim(report_store, from_date="2024-01-01T00:00:00.000Z")
    b = _claim(report_store, from_date="2024-01-02T00:00:00.000Z")
    _claim(report_store, site_id="OTHER")
    ids = [r["id"] for r in report_store.list_reports("SITE001")]
    assert set(ids) == {a["id"], b["id"]}
    generated = [r["generatedAt"] for r in report_store.list_reports("SITE001")]
    assert generated == sorted(generated, reverse=True)


def test_list_reports_in_range_requires_containment(report_store: ReportStore) -> None:
    inside = _claim(
        report_store,
        from_date="2024-01-05T00:00:00.000Z",
        to_date="2024-01-10T00:00:00.000Z",
    )
    _claim(report_store, from_date="2023-12-30T00:00:00.000Z", to_date="2024-01-10T00:00:00.000Z")
    _claim(report_store, from_date="2024-01-20T00:00:00.000Z", to_date="2024-02-02T00:00:00.000Z")

    found = report_store.list_reports_in_range("SITE001", _FROM, _TO)
    assert [r["id"] for r in found] == [inside["id"]]


def test_delete_report(report_store: ReportStore) -> None:
    report = _claim(report_store)
    assert report_store.delete_report(report["id"]) is True
    assert report_store.get_report(report["id"]) is None
    assert report_store.delete_report(report["id"]) is False


def test_concurrent_claims_allow_exactly_one_winner(tmp_path: Path) -> None:
    store = ReportStore(tmp_path / "race.db")

    def _attempt(_: int) -> bool:
        try:
            _claim(store)
        except DuplicateReportError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_attempt, range(16)))
    assert results.count(True) == 1
    store.close()


def test_non_finite_floats_are_stored_as_null(report_store: ReportStore) -> None:
    report = _claim(report_store, data={"interventionStats": {"averageDuration": float("nan")}})
    assert report["data"]["interventionStats"]["averageDuration"] is None


def test_unsupported_schema_version_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "old.db"
    ReportStore(db_path).close()
    conn = sqlite3.connect(str(db_path))
    conn.execute("UPDATE schema_meta SET value = '99' WHERE key = 'version'")
    conn.commit()
    conn.close()
    with pytest.raises(RuntimeError, match="Unsupported reports DB schema version 99"):
        ReportStore(db_path)
