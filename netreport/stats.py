"""Summary statistics over alert, intervention and maintenance records.

Everything here is a pure function of its inputs: no I/O, no logging,
no mutation of the records passed in.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .domain_models import AlertRecord, InterventionRecord, MaintenanceRecord

UNKNOWN_TYPE = "unknown"


@dataclass(slots=True)
class AlertStats:
    total: int = 0
    active: int = 0
    resolved: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "active": self.active, "resolved": self.resolved}


@dataclass(slots=True)
class InterventionStats:
    total: int = 0
    average_duration: float = 0.0
    by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "averageDuration": self.average_duration,
            "byType": dict(self.by_type),
        }

    def to_persisted_dict(self) -> dict[str, Any]:
        """The Report entity keeps totals only; the type breakdown is not stored."""
        return {"total": self.total, "averageDuration": self.average_duration}


@dataclass(slots=True)
class MaintenanceStats:
    total: int = 0
    completed: int = 0
    scheduled: int = 0
    by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "scheduled": self.scheduled,
            "byType": dict(self.by_type),
        }


@dataclass(slots=True)
class StatsSummary:
    alert_stats: AlertStats
    intervention_stats: InterventionStats
    maintenance_stats: MaintenanceStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "alertStats": self.alert_stats.to_dict(),
            "interventionStats": self.intervention_stats.to_dict(),
            "maintenanceStats": self.maintenance_stats.to_dict(),
        }


def summarize_alerts(alerts: Iterable[AlertRecord]) -> AlertStats:
    stats = AlertStats()
    for alert in alerts:
        stats.total += 1
        if alert.status == "active":
            stats.active += 1
        elif alert.status == "resolved":
            stats.resolved += 1
    return stats


def summarize_interventions(interventions: Iterable[InterventionRecord]) -> InterventionStats:
    total = 0
    duration_sum = 0.0
    by_type: dict[str, int] = {}
    for intervention in interventions:
        total += 1
        duration_sum += intervention.duration or 0.0
        key = intervention.type or UNKNOWN_TYPE
        by_type[key] = by_type.get(key, 0) + 1
    return InterventionStats(
        total=total,
        average_duration=duration_sum / total if total > 0 else 0.0,
        by_type=by_type,
    )


def summarize_maintenance(records: Iterable[MaintenanceRecord]) -> MaintenanceStats:
    stats = MaintenanceStats()
    for record in records:
        stats.total += 1
        if record.status == "completed":
            stats.completed += 1
        elif record.status == "scheduled":
            stats.scheduled += 1
        key = record.type or UNKNOWN_TYPE
        stats.by_type[key] = stats.by_type.get(key, 0) + 1
    return stats


def compute_stats(
    alerts: Iterable[AlertRecord],
    interventions: Iterable[InterventionRecord],
    maintenance_records: Iterable[MaintenanceRecord],
) -> StatsSummary:
    return StatsSummary(
        alert_stats=summarize_alerts(alerts),
        intervention_stats=summarize_interventions(interventions),
        maintenance_stats=summarize_maintenance(maintenance_records),
    )
