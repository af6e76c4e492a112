from datetime import date, datetime, timedelta, timezone

from racking.analytics import compute, records_frame
from racking.models import HealthStatus, MaintenanceType, RecordStatus
from racking.records import MaintenanceLog

NOW = datetime(2024, 6, 10, 15, 0, tzinfo=timezone.utc)


def build_log():
    log = MaintenanceLog()
    log.add("rack-1-upright-0-front", MaintenanceType.INSPECTION, "a", now=NOW)
    log.add("rack-1-upright-0-front", MaintenanceType.REPAIR, "b", status=RecordStatus.PENDING, now=NOW - timedelta(days=1))
    log.add("rack-1-upright-0-front", MaintenanceType.REPAIR, "c", status=RecordStatus.IN_PROGRESS, now=NOW - timedelta(days=1))
    log.add("rack-1-beam-0-1-front", MaintenanceType.INSPECTION, "d", now=NOW - timedelta(days=6, hours=10))
    log.add("rack-1-beam-0-1-front", MaintenanceType.INSPECTION, "e", now=NOW - timedelta(days=30))
    log.add("rack-1-deck-0-1", MaintenanceType.CLEANING, "f", status=RecordStatus.SCHEDULED, now=NOW)
    return log


def test_records_frame():
    df = records_frame(build_log().as_mapping())
    assert len(df) == 6
    assert list(df.columns) == ["id", "component_id", "type", "status", "technician", "timestamp", "description", "images"]
    assert str(df["timestamp"].dt.tz) == "UTC"


def test_totals_and_breakdowns():
    stats = compute(
        build_log().as_mapping(),
        {"rack-1-upright-0-front": HealthStatus.POOR, "rack-1-deck-0-1": HealthStatus.GOOD},
        total_components=112,
        now=NOW,
    )
    assert stats.total_records == 6
    assert stats.total_components == 112
    assert stats.components_with_records == 3
    assert stats.pending_count == 2

    assert list(stats.by_type["name"]) == ["inspection", "repair", "cleaning"]
    assert list(stats.by_type["value"]) == [3, 2, 1]
    assert list(stats.by_type["color"])[0] == "#3b82f6"
    assert list(stats.by_status["name"]) == ["completed", "pending", "in_progress", "scheduled"]
    assert dict(zip(stats.health_counts["name"], stats.health_counts["value"])) == {"good": 1, "poor": 1}


def test_last_seven_days():
    stats = compute(build_log().as_mapping(), {}, now=NOW)
    trend = stats.last_7_days
    assert len(trend) == 7
    assert trend["date"].iloc[-1] == date(2024, 6, 10)
    assert trend["date"].iloc[0] == date(2024, 6, 4)
    assert list(trend["count"]) == [1, 0, 0, 0, 0, 2, 2]


def test_naive_now_is_treated_as_utc():
    stats = compute(build_log().as_mapping(), {}, now=NOW.replace(tzinfo=None))
    assert stats.last_7_days["date"].iloc[-1] == date(2024, 6, 10)


def test_top_components_use_labels():
    stats = compute(build_log().as_mapping(), {}, label=lambda cid: cid.upper(), now=NOW)
    top = stats.top_components
    assert list(top["component_id"]) == ["rack-1-upright-0-front", "rack-1-beam-0-1-front", "rack-1-deck-0-1"]
    assert list(top["count"]) == [3, 2, 1]
    assert top["name"].iloc[0] == "RACK-1-UPRIGHT-0-FRONT"


def test_empty_inputs():
    stats = compute({}, {}, now=NOW)
    assert stats.total_records == 0
    assert stats.pending_count == 0
    assert stats.by_type.empty
    assert stats.health_counts.empty
    assert stats.top_components.empty
    assert list(stats.last_7_days["count"]) == [0] * 7
