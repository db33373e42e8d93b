"""Intermediate data model for the site report PDF.

Maps the request, statistics, records and rendered images to plain
display strings, so the Canvas renderer never formats domain values and
every field it draws already has a textual value.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ..domain_models import (
    NOT_AVAILABLE,
    UNTITLED,
    AlertRecord,
    InterventionRecord,
    MaintenanceRecord,
    ReportRequest,
    display_text,
    display_timestamp,
)
from ..stats import StatsSummary

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StatBlock:
    heading: str
    lines: list[str] = field(default_factory=list)


@dataclass
class ReportImage:
    name: str
    data: bytes


@dataclass
class DetailEntry:
    heading: str
    fields: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class DetailSection:
    title: str
    entries: list[DetailEntry] = field(default_factory=list)


@dataclass
class ReportTemplateData:
    title: str = ""
    metadata: list[tuple[str, str]] = field(default_factory=list)
    stat_blocks: list[StatBlock] = field(default_factory=list)
    charts: list[ReportImage] = field(default_factory=list)
    supplementary_images: list[ReportImage] = field(default_factory=list)
    detail_sections: list[DetailSection] = field(default_factory=list)
    footer_label: str = ""


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def _format_minutes(value: float | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:g} minutes"


def _stat_blocks(stats: StatsSummary) -> list[StatBlock]:
    alert = stats.alert_stats
    intervention = stats.intervention_stats
    maintenance = stats.maintenance_stats
    return [
        StatBlock(
            "Alert Statistics",
            [
                f"Total Alerts: {alert.total}",
                f"Active Alerts: {alert.active}",
                f"Resolved Alerts: {alert.resolved}",
            ],
        ),
        StatBlock(
            "Intervention Statistics",
            [
                f"Total Interventions: {intervention.total}",
                f"Average Duration: {intervention.average_duration:.2f} minutes",
                *(f"{name}: {count}" for name, count in intervention.by_type.items()),
            ],
        ),
        StatBlock(
            "Maintenance Statistics",
            [
                f"Total Maintenance Activities: {maintenance.total}",
                f"Completed: {maintenance.completed}",
                f"Scheduled: {maintenance.scheduled}",
                *(f"{name}: {count}" for name, count in maintenance.by_type.items()),
            ],
        ),
    ]


def _alert_section(alerts: Sequence[AlertRecord]) -> DetailSection:
    return DetailSection(
        "Alert Details",
        [
            DetailEntry(
                f"Alert #{idx}: {display_text(alert.message, UNTITLED)}",
                [
                    ("ID", display_text(alert.id)),
                    ("Status", display_text(alert.status)),
                    ("Site ID", display_text(alert.site_id)),
                    ("Timestamp", display_timestamp(alert.timestamp)),
                    ("Created At", display_timestamp(alert.created_at)),
                    ("Resolved At", display_timestamp(alert.resolved_at)),
                ],
            )
            for idx, alert in enumerate(alerts, start=1)
        ],
    )


def _intervention_section(interventions: Sequence[InterventionRecord]) -> DetailSection:
    return DetailSection(
        "Intervention Details",
        [
            DetailEntry(
                f"Intervention #{idx}: {display_text(item.description, UNTITLED)}",
                [
                    ("ID", display_text(item.id)),
                    ("Type", display_text(item.type)),
                    ("Duration", _format_minutes(item.duration)),
                    ("Created At", display_timestamp(item.created_at)),
                ],
            )
            for idx, item in enumerate(interventions, start=1)
        ],
    )


def _maintenance_section(records: Sequence[MaintenanceRecord]) -> DetailSection:
    return DetailSection(
        "Maintenance Details",
        [
            DetailEntry(
                f"Maintenance #{idx}: {display_text(record.description, UNTITLED)}",
                [
                    ("ID", display_text(record.id)),
                    ("Type", display_text(record.type)),
                    ("Status", display_text(record.status)),
                    ("Created At", display_timestamp(record.created_at)),
                    ("Completed At", display_timestamp(record.completed_at)),
                ],
            )
            for idx, record in enumerate(records, start=1)
        ],
    )


def map_report_data(
    *,
    request: ReportRequest,
    stats: StatsSummary,
    alerts: Sequence[AlertRecord],
    interventions: Sequence[InterventionRecord],
    maintenance_records: Sequence[MaintenanceRecord],
    charts: Sequence[tuple[str, bytes]],
    supplementary_images: Sequence[tuple[str, bytes]] = (),
    generated_at: datetime,
) -> ReportTemplateData:
    """Build the template for one report.

    Detail sections are included only for non-empty record sets.
    """
    detail_sections: list[DetailSection] = []
    if alerts:
        detail_sections.append(_alert_section(alerts))
    if interventions:
        detail_sections.append(_intervention_section(interventions))
    if maintenance_records:
        detail_sections.append(_maintenance_section(maintenance_records))

    date_range = (
        f"{request.from_date.strftime('%Y-%m-%d')} to {request.to_date.strftime('%Y-%m-%d')}"
    )
    return ReportTemplateData(
        title=f"Site Report: {request.site_id}",
        metadata=[
            ("Report Type", request.report_type),
            ("Date Range", date_range),
            ("Generated By", request.generated_by),
            ("Generated On", display_timestamp(generated_at)),
        ],
        stat_blocks=_stat_blocks(stats),
        charts=[ReportImage(name, data) for name, data in charts],
        supplementary_images=[ReportImage(name, data) for name, data in supplementary_images],
        detail_sections=detail_sections,
        footer_label=f"Site {request.site_id} | {request.report_type} report",
    )
