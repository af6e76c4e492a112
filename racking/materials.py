"""
Material / coloring policy.

Resolution order, first match wins:
  1. health view and the component has a health entry -> health color
  2. heatmap view -> inspection-recency tier color
  3. normal rules: selected -> green highlight, has records -> orange tint,
     otherwise the kind's base color
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from racking.models import (
    HealthStatus,
    MaintenanceRecord,
    MaintenanceType,
    RecordStatus,
    ViewMode,
)

NEVER_INSPECTED = 999
BLACK = "#000000"
SELECTED_COLOR = "#00ff88"
RECORDS_COLOR = "#ff6600"
DECK_RECORDS_COLOR = "#ff9900"
UNKNOWN_HEALTH_COLOR = "#888888"

HEATMAP_TIERS = (
    (7, "#10b981"),
    (30, "#f59e0b"),
    (90, "#f97316"),
)
HEATMAP_STALE = "#ef4444"

MODE_INTENSITY = 0.3
SELECTED_INTENSITY = 0.5
RECORDS_INTENSITY = 0.2


@dataclass(frozen=True)
class Material:
    color: str
    emissive: str = BLACK
    emissive_intensity: float = 0.0
    metalness: float = 0.6
    roughness: float = 0.4


def days_since_inspection(records: Optional[Iterable[MaintenanceRecord]], now: datetime) -> int:
    """
    Whole days since the most recent completed inspection.

    Returns NEVER_INSPECTED when the component has no completed inspection.
    """
    inspections = [
        r for r in (records or [])
        if r.type == MaintenanceType.INSPECTION and r.status == RecordStatus.COMPLETED
    ]
    if not inspections:
        return NEVER_INSPECTED
    latest = max(r.timestamp for r in inspections)
    return math.floor((now - latest).total_seconds() / 86400)


def heatmap_color(days: int) -> str:
    for limit, color in HEATMAP_TIERS:
        if days <= limit:
            return color
    return HEATMAP_STALE


def health_color(status) -> str:
    try:
        return HealthStatus(status).color
    except ValueError:
        return UNKNOWN_HEALTH_COLOR


def resolve_material(
    component_id: str,
    base_color: str,
    view_mode: ViewMode,
    is_selected: bool,
    has_records: bool,
    health_map: Mapping[str, HealthStatus],
    days_since: Callable[[str], int],
) -> Material:
    """
    Resolve the render material of one component.

    Args:
        component_id: Component being colored
        base_color: Configured color for the component's kind
        view_mode: Active view mode
        is_selected: Whether this is the selected component
        has_records: Whether the component has at least one maintenance record
        health_map: component id -> health status
        days_since: component id -> days since last completed inspection

    Returns:
        Material with color and emissive settings
    """
    view_mode = ViewMode(view_mode)
    if view_mode == ViewMode.HEALTH and component_id in health_map:
        color = health_color(health_map[component_id])
        return Material(color=color, emissive=color, emissive_intensity=MODE_INTENSITY)
    if view_mode == ViewMode.HEATMAP:
        color = heatmap_color(days_since(component_id))
        return Material(color=color, emissive=color, emissive_intensity=MODE_INTENSITY)
    if is_selected:
        return Material(color=base_color, emissive=SELECTED_COLOR, emissive_intensity=SELECTED_INTENSITY)
    if has_records:
        return Material(color=base_color, emissive=RECORDS_COLOR, emissive_intensity=RECORDS_INTENSITY)
    return Material(color=base_color)


def resolve_deck_material(
    component_id: str,
    base_color: str,
    view_mode: ViewMode,
    is_selected: bool,
    has_records: bool,
    health_map: Mapping[str, HealthStatus],
    days_since: Callable[[str], int],
) -> Material:
    """Wire decks recolor the wires themselves instead of only tinting them."""
    view_mode = ViewMode(view_mode)
    if view_mode == ViewMode.HEALTH and component_id in health_map:
        color = health_color(health_map[component_id])
    elif view_mode == ViewMode.HEATMAP:
        color = heatmap_color(days_since(component_id))
    elif is_selected:
        color = SELECTED_COLOR
    elif has_records:
        color = DECK_RECORDS_COLOR
    else:
        color = base_color

    if is_selected:
        emissive, intensity = SELECTED_COLOR, 0.4
    elif view_mode != ViewMode.NORMAL:
        emissive, intensity = color, 0.2
    else:
        emissive, intensity = BLACK, 0.0
    return Material(color=color, emissive=emissive, emissive_intensity=intensity, metalness=0.7, roughness=0.3)


def pallet_finish(material: Material) -> Material:
    return replace(material, metalness=0.1, roughness=0.8)
