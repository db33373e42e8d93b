from __future__ import annotations

import pytest
from conftest import scenario_alerts, scenario_interventions

from netreport.domain_models import AlertRecord, InterventionRecord, MaintenanceRecord
from netreport.stats import (
    UNKNOWN_TYPE,
    compute_stats,
    summarize_alerts,
    summarize_interventions,
    summarize_maintenance,
)


def test_empty_inputs_yield_all_zero_stats() -> None:
    stats = compute_stats([], [], [])
    assert stats.to_dict() == {
        "alertStats": {"total": 0, "active": 0, "resolved": 0},
        "interventionStats": {"total": 0, "averageDuration": 0, "byType": {}},
        "maintenanceStats": {"total": 0, "completed": 0, "scheduled": 0, "byType": {}},
    }


def test_alert_counts_ignore_other_statuses() -> None:
    alerts = [
        AlertRecord(status="active"),
        AlertRecord(status="resolved"),
        AlertRecord(status="acknowledged"),
        AlertRecord(status=None),
    ]
    stats = summarize_alerts(alerts)
    assert stats.total == 4
    assert stats.active == 1
    assert stats.resolved == 1
    assert stats.active + stats.resolved <= stats.total


def test_average_duration_treats_missing_duration_as_zero() -> None:
    interventions = [
        InterventionRecord(duration=15.0, type="fiber"),
        InterventionRecord(duration=None, type="fiber"),
        InterventionRecord.from_dict({"duration": "not-a-number"}),
    ]
    stats = summarize_interventions(interventions)
    assert stats.total == 3
    assert stats.average_duration == pytest.approx(5.0)
    assert stats.by_type == {"fiber": 2, UNKNOWN_TYPE: 1}


def test_maintenance_counts_statuses_and_types() -> None:
    records = [
        MaintenanceRecord(type="preventive", status="completed"),
        MaintenanceRecord(type="preventive", status="scheduled"),
        MaintenanceRecord(type="corrective", status="in_progress"),
        MaintenanceRecord(type=None, status="completed"),
    ]
    stats = summarize_maintenance(records)
    assert stats.total == 4
    assert stats.completed == 2
    assert stats.scheduled == 1
    assert stats.by_type == {"preventive": 2, "corrective": 1, UNKNOWN_TYPE: 1}


def test_scenario_records_aggregate_as_expected() -> None:
    alerts = [AlertRecord.from_dict(d) for d in scenario_alerts()]
    interventions = [InterventionRecord.from_dict(d) for d in scenario_interventions()]
    stats = compute_stats(alerts, interventions, [])

    assert stats.alert_stats.to_dict() == {"total": 2, "active": 1, "resolved": 1}
    assert stats.intervention_stats.to_dict() == {
        "total": 3,
        "averageDuration": pytest.approx(20.0),
        "byType": {"fiber": 2, "power": 1},
    }
    assert stats.maintenance_stats.to_dict() == {
        "total": 0,
        "completed": 0,
        "scheduled": 0,
        "byType": {},
    }


def test_persisted_intervention_stats_drop_type_breakdown() -> None:
    stats = summarize_interventions([InterventionRecord(duration=4.0, type="power")])
    assert stats.to_persisted_dict() == {"total": 1, "averageDuration": 4.0}


def test_aggregation_does_not_mutate_or_require_lists() -> None:
    alerts = (AlertRecord(status="active") for _ in range(3))
    assert summarize_alerts(alerts).total == 3
