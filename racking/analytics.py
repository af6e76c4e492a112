"""
Maintenance analytics over every stored record.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

import pandas as pd

from racking.models import (
    HEALTH_COLORS,
    MAINTENANCE_TYPE_COLORS,
    STATUS_COLORS,
    HealthStatus,
    MaintenanceRecord,
    MaintenanceType,
    RecordStatus,
    utcnow,
)

TOP_COMPONENTS = 5
TREND_DAYS = 7

RECORD_COLUMNS = ["id", "component_id", "type", "status", "technician", "timestamp", "description", "images"]


def records_frame(records: Mapping[str, Sequence[MaintenanceRecord]]) -> pd.DataFrame:
    """Flatten component id -> records into one row per record."""
    rows = [
        {
            "id": r.id,
            "component_id": cid,
            "type": r.type.value,
            "status": r.status.value,
            "technician": r.technician or "",
            "timestamp": r.timestamp,
            "description": r.description,
            "images": len(r.images),
        }
        for cid, items in records.items()
        for r in items
    ]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


def _counts(series: pd.Series, order, colors) -> pd.DataFrame:
    """Value counts in enum order, zero rows dropped, with a color column."""
    counts = series.value_counts()
    rows = [
        {"name": member.value, "value": int(counts.get(member.value, 0)), "color": colors[member]}
        for member in order
    ]
    df = pd.DataFrame(rows, columns=["name", "value", "color"])
    return df[df["value"] > 0].reset_index(drop=True)


@dataclass
class Analytics:
    total_records: int
    total_components: int
    components_with_records: int
    pending_count: int
    by_type: pd.DataFrame
    by_status: pd.DataFrame
    last_7_days: pd.DataFrame
    top_components: pd.DataFrame
    health_counts: pd.DataFrame


def compute(
    records: Mapping[str, Sequence[MaintenanceRecord]],
    health: Mapping[str, HealthStatus],
    total_components: int = 0,
    label: Optional[Callable[[str], str]] = None,
    now: Optional[datetime] = None,
) -> Analytics:
    """
    Summaries for the analytics dashboard.

    Args:
        records: component id -> records
        health: component id -> health rating
        total_components: Number of addressable components in the scene
        label: component id -> display label; ids are shown as-is without it
        now: Reference time for the 7-day trend (UTC)

    Returns:
        Analytics with scalar totals and one DataFrame per chart
    """
    now = now or utcnow()
    label = label or (lambda cid: cid)
    df = records_frame(records)

    ts = pd.Timestamp(now)
    today = (ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")).normalize()
    days = [today - timedelta(days=i) for i in range(TREND_DAYS - 1, -1, -1)]
    per_day = df["timestamp"].dt.normalize().value_counts() if not df.empty else pd.Series(dtype=int)
    last_7_days = pd.DataFrame({
        "date": [d.date() for d in days],
        "count": [int(per_day.get(d, 0)) for d in days],
    })

    per_component = df.groupby("component_id").size().sort_values(ascending=False, kind="stable")
    top = per_component.head(TOP_COMPONENTS)
    top_components = pd.DataFrame({
        "component_id": list(top.index),
        "name": [label(cid) for cid in top.index],
        "count": [int(v) for v in top.values],
    })

    health_series = pd.Series([HealthStatus(h).value for h in health.values()], dtype=object)

    return Analytics(
        total_records=len(df),
        total_components=total_components,
        components_with_records=int(df["component_id"].nunique()),
        pending_count=int(df["status"].isin([RecordStatus.PENDING.value, RecordStatus.IN_PROGRESS.value]).sum()),
        by_type=_counts(df["type"], MaintenanceType, MAINTENANCE_TYPE_COLORS),
        by_status=_counts(df["status"], RecordStatus, STATUS_COLORS),
        last_7_days=last_7_days,
        top_components=top_components,
        health_counts=_counts(health_series, HealthStatus, HEALTH_COLORS),
    )
