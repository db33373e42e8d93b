"""Render a site report PDF from a JSON file of records, offline.

The input file holds the request fields plus the three record arrays::

    {"siteId": "SITE001", "fromDate": "2024-01-01", "toDate": "2024-01-31",
     "alerts": [...], "interventions": [...], "maintenance": [...]}

Neither the upstream services nor the reports database are touched.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from .domain_models import AlertRecord, InterventionRecord, MaintenanceRecord, ReportRequest
from .errors import ReportError
from .report.charts import ChartRenderer
from .report.pdf_builder import build_report_pdf
from .report.report_data import map_report_data
from .stats import compute_stats

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a site report PDF from a JSON file")
    parser.add_argument("input", type=Path, help="Input JSON file with request fields and records")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output PDF path (default: <input_stem>_report.pdf)",
    )
    parser.add_argument(
        "--stats-json",
        type=Path,
        default=None,
        help="Optional path to write the computed statistics JSON",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _records(payload: dict, key: str, parse):
    raw = payload.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"'{key}' must be a JSON array")
    return [parse(item) for item in raw if isinstance(item, dict)]


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.input.exists():
        print(f"Error: input file not found: {args.input}", file=sys.stderr)
        return 1
    try:
        payload = json.loads(args.input.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("input must contain a JSON object at the top level")
        request = ReportRequest.from_payload(payload)
        alerts = _records(payload, "alerts", AlertRecord.from_dict)
        interventions = _records(payload, "interventions", InterventionRecord.from_dict)
        maintenance_records = _records(payload, "maintenance", MaintenanceRecord.from_dict)
    except json.JSONDecodeError as exc:
        print(f"Error: input file contains invalid JSON: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        # ReportValidationError is a ValueError too.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    stats = compute_stats(alerts, interventions, maintenance_records)
    out_pdf = args.output or args.input.with_name(f"{args.input.stem}_report.pdf")
    out_pdf.parent.mkdir(parents=True, exist_ok=True)
    try:
        charts = ChartRenderer().render_all(stats)
        data = map_report_data(
            request=request,
            stats=stats,
            alerts=alerts,
            interventions=interventions,
            maintenance_records=maintenance_records,
            charts=charts.in_order(),
            generated_at=datetime.now(UTC),
        )
        out_pdf.write_bytes(build_report_pdf(data))
    except (ReportError, OSError, ValueError, TypeError) as exc:
        LOGGER.debug("PDF generation failed", exc_info=True)
        print(f"Error: PDF generation failed: {exc}", file=sys.stderr)
        return 1
    print(f"wrote report: {out_pdf}")

    if args.stats_json is not None:
        args.stats_json.parent.mkdir(parents=True, exist_ok=True)
        args.stats_json.write_text(json.dumps(stats.to_dict(), indent=2), encoding="utf-8")
        print(f"wrote stats: {args.stats_json}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
