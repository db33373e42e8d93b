"""SQLite-backed persistence for generated site reports.

One row per Report entity.  ``(site_id, from_date, to_date, report_type)``
is a unique key enforced by the database, so two concurrent generations
of the same report cannot both claim it.  Each row carries a status
(``pending`` -> ``complete`` | ``failed``) because statistics are stored
before the PDF exists.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from threading import RLock
from typing import Any

from .errors import DuplicateReportError

LOGGER = logging.getLogger(__name__)

# -- Schema -------------------------------------------------------------------

_SCHEMA_VERSION = 1

STATUS_PENDING = "pending"
STATUS_COMPLETE = "complete"
STATUS_FAILED = "failed"

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS schema_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reports (
    report_id        TEXT PRIMARY KEY,
    site_id          TEXT NOT NULL,
    report_type      TEXT NOT NULL DEFAULT 'summary',
    from_date        TEXT NOT NULL,
    to_date          TEXT NOT NULL,
    generated_at     TEXT NOT NULL,
    generated_by     TEXT NOT NULL DEFAULT 'system',
    status           TEXT NOT NULL DEFAULT 'pending',
    file_path        TEXT,
    error_message    TEXT,
    data_json        TEXT NOT NULL,
    UNIQUE (site_id, from_date, to_date, report_type)
);

CREATE INDEX IF NOT EXISTS idx_reports_site_generated ON reports(site_id, generated_at);
"""

_SELECT_COLS = (
    "report_id, site_id, report_type, from_date, to_date, generated_at, "
    "generated_by, status, file_path, error_message, data_json"
)


class ReportStore:
    """Thin wrapper around a SQLite database of Report entities."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = RLock()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._ensure_schema()

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _cursor(self, *, commit: bool = True):
        with self._lock:
            cur = self._conn.cursor()
            try:
                yield cur
                if commit:
                    self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cur.close()

    @staticmethod
    def _sanitize_for_json(value: Any) -> Any:
        if isinstance(value, float):
            return value if math.isfinite(value) else None
        if isinstance(value, dict):
            return {k: ReportStore._sanitize_for_json(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [ReportStore._sanitize_for_json(v) for v in value]
        return value

    @classmethod
    def _safe_json_dumps(cls, value: Any) -> str:
        return json.dumps(cls._sanitize_for_json(value), ensure_ascii=False, allow_nan=False)

    @staticmethod
    def _safe_json_loads(value: str | None, *, context: str) -> Any | None:
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            LOGGER.warning("Skipping invalid JSON payload while reading %s", context, exc_info=True)
            return None

    def _ensure_schema(self) -> None:
        with self._cursor() as cur:
            cur.executescript(_SCHEMA_SQL)
        with self._cursor() as cur:
            cur.execute("SELECT value FROM schema_meta WHERE key = ?", ("version",))
            row = cur.fetchone()
            if row is None:
                cur.execute(
                    "INSERT INTO schema_meta (key, value) VALUES (?, ?)",
                    ("version", str(_SCHEMA_VERSION)),
                )
                return
            version = int(str(row[0]))
            if version != _SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported reports DB schema version {version}; "
                    f"expected {_SCHEMA_VERSION}. Delete the database file to recreate."
                )

    # -- row conversion -------------------------------------------------------

    @classmethod
    def _row_to_report(cls, row: tuple[Any, ...]) -> dict[str, Any]:
        (
            report_id,
            site_id,
            report_type,
            from_date,
            to_date,
            generated_at,
            generated_by,
            status,
            file_path,
            error_message,
            data_json,
        ) = row
        data = cls._safe_json_loads(data_json, context=f"report {report_id} data")
        return {
            "id": report_id,
            "siteId": site_id,
            "reportType": report_type,
            "fromDate": from_date,
            "toDate": to_date,
            "generatedAt": generated_at,
            "generatedBy": generated_by,
            "status": status,
            "filePath": file_path,
            "errorMessage": error_message,
            "data": data if isinstance(data, dict) else {},
        }

    # -- write ----------------------------------------------------------------

    def claim_report(
        self,
        *,
        site_id: str,
        report_type: str,
        from_date: str,
        to_date: str,
        generated_by: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Insert a ``pending`` Report, or re-claim a ``failed`` one with the same key.

        Raises :class:`DuplicateReportError` when a pending or complete
        report already holds the key.
        """
        report_id = uuid.uuid4().hex
        now = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        data_json = self._safe_json_dumps(data)
        with self._cursor() as cur:
            try:
                cur.execute(
                    "INSERT INTO reports (report_id, site_id, report_type, from_date, to_date, "
                    "generated_at, generated_by, status, data_json) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        report_id,
                        site_id,
                        report_type,
                        from_date,
                        to_date,
                        now,
                        generated_by,
                        STATUS_PENDING,
                        data_json,
                    ),
                )
            except sqlite3.IntegrityError:
                cur.execute(
                    "UPDATE reports SET status = ?, generated_at = ?, generated_by = ?, "
                    "data_json = ?, file_path = NULL, error_message = NULL "
                    "WHERE site_id = ? AND from_date = ? AND to_date = ? AND report_type = ? "
                    "AND status = ?",
                    (
                        STATUS_PENDING,
                        now,
                        generated_by,
                        data_json,
                        site_id,
                        from_date,
                        to_date,
                        report_type,
                        STATUS_FAILED,
                    ),
                )
                if cur.rowcount == 0:
                    raise DuplicateReportError() from None
                LOGGER.info(
                    "Re-claimed failed report for site=%s range=%s..%s type=%s",
                    site_id,
                    from_date,
                    to_date,
                    report_type,
                )
            cur.execute(
                f"SELECT {_SELECT_COLS} FROM reports "
                "WHERE site_id = ? AND from_date = ? AND to_date = ? AND report_type = ?",
                (site_id, from_date, to_date, report_type),
            )
            row = cur.fetchone()
        return self._row_to_report(row)

    def mark_complete(
        self, report_id: str, file_path: str, additional_info: dict[str, Any]
    ) -> dict[str, Any] | None:
        with self._cursor() as cur:
            cur.execute("SELECT data_json FROM reports WHERE report_id = ?", (report_id,))
            row = cur.fetchone()
            if row is None:
                return None
            data = self._safe_json_loads(row[0], context=f"report {report_id} data") or {}
            info = data.get("additionalInfo")
            data["additionalInfo"] = {**(info if isinstance(info, dict) else {}), **additional_info}
            cur.execute(
                "UPDATE reports SET status = ?, file_path = ?, error_message = NULL, "
                "data_json = ? WHERE report_id = ?",
                (STATUS_COMPLETE, file_path, self._safe_json_dumps(data), report_id),
            )
        return self.get_report(report_id)

    def mark_failed(self, report_id: str, error_message: str) -> None:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE reports SET status = ?, error_message = ? WHERE report_id = ?",
                (STATUS_FAILED, error_message, report_id),
            )

    def delete_report(self, report_id: str) -> bool:
        with self._cursor() as cur:
            cur.execute("DELETE FROM reports WHERE report_id = ?", (report_id,))
            return cur.rowcount > 0

    # -- read -----------------------------------------------------------------

    def get_report(self, report_id: str) -> dict[str, Any] | None:
        with self._cursor(commit=False) as cur:
            cur.execute(f"SELECT {_SELECT_COLS} FROM reports WHERE report_id = ?", (report_id,))
            row = cur.fetchone()
        return self._row_to_report(row) if row is not None else None

    def find_report(
        self, site_id: str, from_date: str, to_date: str, report_type: str
    ) -> dict[str, Any] | None:
        with self._cursor(commit=False) as cur:
            cur.execute(
                f"SELECT {_SELECT_COLS} FROM reports "
                "WHERE site_id = ? AND from_date = ? AND to_date = ? AND report_type = ?",
                (site_id, from_date, to_date, report_type),
            )
            row = cur.fetchone()
        return self._row_to_report(row) if row is not None else None

    def list_reports(self, site_id: str) -> list[dict[str, Any]]:
        with self._cursor(commit=False) as cur:
            cur.execute(
                f"SELECT {_SELECT_COLS} FROM reports WHERE site_id = ? "
                "ORDER BY generated_at DESC",
                (site_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_report(row) for row in rows]

    def list_reports_in_range(
        self, site_id: str, from_date: str, to_date: str
    ) -> list[dict[str, Any]]:
        """Reports whose stored range lies entirely inside ``[from_date, to_date]``."""
        with self._cursor(commit=False) as cur:
            cur.execute(
                f"SELECT {_SELECT_COLS} FROM reports "
                "WHERE site_id = ? AND from_date >= ? AND to_date <= ? "
                "ORDER BY generated_at DESC",
                (site_id, from_date, to_date),
            )
            rows = cur.fetchall()
        return [self._row_to_report(row) for row in rows]
