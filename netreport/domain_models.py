"""Domain model objects for the report generator.

Upstream services answer with loosely-typed JSON documents; these
dataclasses give the rest of the package one tolerant parsing point so
aggregation and rendering never deal with raw dicts.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .errors import ReportValidationError

REPORT_TYPES: tuple[str, ...] = ("summary", "daily", "weekly", "monthly")
DEFAULT_REPORT_TYPE = "summary"
DEFAULT_GENERATED_BY = "system"

_BARE_DATE_MAX_LEN = 10
"""``YYYY-MM-DD`` and shorter inputs carry no time-of-day component."""

NOT_AVAILABLE = "N/A"
UNTITLED = "Untitled"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _as_float_or_none(value: object) -> float | None:
    if value in (None, "") or isinstance(value, bool):
        return None
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def _text_or_none(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp(value: object) -> datetime | None:
    """Parse an upstream timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` suffix included), bare dates, epoch
    milliseconds and ``datetime`` objects.  Naive values are taken as UTC.
    Returns ``None`` for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def isoformat_utc(value: datetime) -> str:
    """Canonical storage form: UTC, millisecond precision, ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_bare_date(raw: str) -> bool:
    return len(raw.strip()) <= _BARE_DATE_MAX_LEN


def display_timestamp(value: object) -> str:
    """Human-readable timestamp for the PDF; ``N/A`` when absent."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return NOT_AVAILABLE
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


def display_text(value: object, fallback: str = NOT_AVAILABLE) -> str:
    text = _text_or_none(value)
    return text if text is not None else fallback


def _record_id(d: Mapping[str, Any]) -> str | None:
    return _text_or_none(d.get("_id", d.get("id")))


# ---------------------------------------------------------------------------
# Upstream records (read-only)
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class AlertRecord:
    id: str | None = None
    site_id: str | None = None
    message: str | None = None
    status: str | None = None
    timestamp: object = None
    created_at: object = None
    resolved_at: object = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> AlertRecord:
        return cls(
            id=_record_id(d),
            site_id=_text_or_none(d.get("siteId")),
            message=_text_or_none(d.get("message")),
            status=_text_or_none(d.get("status")),
            timestamp=d.get("timestamp"),
            created_at=d.get("createdAt"),
            resolved_at=d.get("resolvedAt"),
        )


@dataclass(slots=True, frozen=True)
class InterventionRecord:
    id: str | None = None
    description: str | None = None
    type: str | None = None
    duration: float | None = None
    created_at: object = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> InterventionRecord:
        return cls(
            id=_record_id(d),
            description=_text_or_none(d.get("description")),
            type=_text_or_none(d.get("type")),
            duration=_as_float_or_none(d.get("duration")),
            created_at=d.get("createdAt"),
        )


@dataclass(slots=True, frozen=True)
class MaintenanceRecord:
    id: str | None = None
    description: str | None = None
    type: str | None = None
    status: str | None = None
    created_at: object = None
    completed_at: object = None

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> MaintenanceRecord:
        return cls(
            id=_record_id(d),
            description=_text_or_none(d.get("description")),
            type=_text_or_none(d.get("type")),
            status=_text_or_none(d.get("status")),
            created_at=d.get("createdAt"),
            completed_at=d.get("completedAt"),
        )


# ---------------------------------------------------------------------------
# Report request
# ---------------------------------------------------------------------------


def _require_timestamp(payload: Mapping[str, Any], field_name: str) -> tuple[str, datetime]:
    raw = payload.get(field_name)
    if not isinstance(raw, str) or not raw.strip():
        raise ReportValidationError("Missing required parameters.")
    parsed = parse_timestamp(raw)
    if parsed is None:
        raise ReportValidationError("Invalid date format.")
    return raw.strip(), parsed


@dataclass(slots=True, frozen=True)
class ReportRequest:
    site_id: str
    from_date: datetime
    to_date: datetime
    report_type: str = DEFAULT_REPORT_TYPE
    generated_by: str = DEFAULT_GENERATED_BY

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ReportRequest:
        """Validate a ``POST /generate`` body.

        A ``toDate`` given as a bare date covers that whole day, up to
        23:59:59.999.
        """
        raw_site = payload.get("siteId")
        site_id = _text_or_none(raw_site) if isinstance(raw_site, str) else None
        if site_id is None:
            raise ReportValidationError("Missing required parameters.")
        _, from_date = _require_timestamp(payload, "fromDate")
        raw_to, to_date = _require_timestamp(payload, "toDate")
        if is_bare_date(raw_to):
            to_date = end_of_day(to_date)
        if from_date > to_date:
            raise ReportValidationError("fromDate must not be after toDate.")

        report_type = _text_or_none(payload.get("reportType")) or DEFAULT_REPORT_TYPE
        if report_type not in REPORT_TYPES:
            raise ReportValidationError(
                f"Invalid reportType {report_type!r}; expected one of {', '.join(REPORT_TYPES)}."
            )
        generated_by = _text_or_none(payload.get("generatedBy")) or DEFAULT_GENERATED_BY
        return cls(
            site_id=site_id,
            from_date=from_date,
            to_date=to_date,
            report_type=report_type,
            generated_by=generated_by,
        )

    @property
    def from_iso(self) -> str:
        return isoformat_utc(self.from_date)

    @property
    def to_iso(self) -> str:
        return isoformat_utc(self.to_date)

    @property
    def key(self) -> tuple[str, str, str, str]:
        """Uniqueness key of the persisted Report entity."""
        return (self.site_id, self.from_iso, self.to_iso, self.report_type)


def parse_query_range(from_raw: str | None, to_raw: str | None) -> tuple[str, str]:
    """Validate a ``date-range`` query and return canonical ISO bounds."""
    if not from_raw or not to_raw:
        raise ReportValidationError("Invalid or missing date range")
    from_date = parse_timestamp(from_raw)
    to_date = parse_timestamp(to_raw)
    if from_date is None or to_date is None:
        raise ReportValidationError("Invalid or missing date range")
    if is_bare_date(to_raw):
        to_date = end_of_day(to_date)
    return isoformat_utc(from_date), isoformat_utc(to_date)
