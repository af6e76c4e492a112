"""
Value objects for racks, maintenance records and health ratings.

RackConfig is the configuration-edit boundary: constructing one with invalid
values raises pydantic.ValidationError, and RackConfig.clamped() is the
forgiving entry point used by editors and importers.
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from racking.identity import validate_rack_id

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

BAYS_RANGE = (1, 50)
LEVELS_RANGE = (1, 20)
DIMENSION_RANGE = (0.1, 20.0)
FILL_RANGE = (0, 100)


class MaintenanceType(str, Enum):
    INSPECTION = "inspection"
    REPAIR = "repair"
    REPLACEMENT = "replacement"
    CLEANING = "cleaning"
    UPGRADE = "upgrade"
    DAMAGE_REPORT = "damage_report"


class RecordStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SCHEDULED = "scheduled"


class HealthStatus(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"

    @property
    def color(self) -> str:
        return HEALTH_COLORS[self]

    @property
    def priority(self) -> int:
        return {"good": 1, "fair": 2, "poor": 3, "critical": 4}[self.value]


class ViewMode(str, Enum):
    NORMAL = "normal"
    HEALTH = "health"
    HEATMAP = "heatmap"


HEALTH_COLORS = {
    HealthStatus.GOOD: "#10b981",
    HealthStatus.FAIR: "#f59e0b",
    HealthStatus.POOR: "#f97316",
    HealthStatus.CRITICAL: "#ef4444",
}

MAINTENANCE_TYPE_COLORS = {
    MaintenanceType.INSPECTION: "#3b82f6",
    MaintenanceType.REPAIR: "#f59e0b",
    MaintenanceType.REPLACEMENT: "#ef4444",
    MaintenanceType.CLEANING: "#10b981",
    MaintenanceType.UPGRADE: "#8b5cf6",
    MaintenanceType.DAMAGE_REPORT: "#dc2626",
}

STATUS_COLORS = {
    RecordStatus.COMPLETED: "#10b981",
    RecordStatus.PENDING: "#f59e0b",
    RecordStatus.IN_PROGRESS: "#3b82f6",
    RecordStatus.SCHEDULED: "#8b5cf6",
}


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


class RackConfig(BaseModel):
    """Declarative rack configuration. Dimensions are meters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bays: int = Field(3, ge=1)
    levels: int = Field(4, ge=1)
    bay_width: float = Field(2.7, gt=0, alias="bayWidth")
    bay_depth: float = Field(1.2, gt=0, alias="bayDepth")
    level_height: float = Field(1.5, gt=0, alias="levelHeight")
    frame_color: str = Field("#4a90d9", alias="frameColor")
    beam_color: str = Field("#ff6b00", alias="beamColor")
    crossbar_color: str = Field("#ff9500", alias="crossbarColor")
    wire_deck_color: str = Field("#666666", alias="wireDeckColor")
    pallet_color: str = Field("#c4a574", alias="palletColor")
    show_wire_decks: bool = Field(True, alias="showWireDecks")
    show_pallets: bool = Field(False, alias="showPallets")
    pallet_fill: int = Field(70, ge=0, le=100, alias="palletFill")

    @field_validator("frame_color", "beam_color", "crossbar_color", "wire_deck_color", "pallet_color")
    @classmethod
    def _check_color(cls, v: str) -> str:
        if not isinstance(v, str) or not HEX_COLOR.match(v):
            raise ValueError(f"color must be #rrggbb, got {v!r}")
        return v.lower()

    @classmethod
    def clamped(cls, **values: Any) -> "RackConfig":
        """
        Build a config from raw editor/import values, clamping out-of-range
        numbers and replacing unparseable colors with the field default.
        Accepts both snake_case names and the camelCase aliases.
        """
        names = {}
        for name, field in cls.model_fields.items():
            if name in values:
                names[name] = values[name]
            elif field.alias and field.alias in values:
                names[name] = values[field.alias]

        defaults = {name: field.default for name, field in cls.model_fields.items()}
        out: Dict[str, Any] = {}
        for name, raw in names.items():
            try:
                if name == "bays":
                    out[name] = _clamp(int(raw), *BAYS_RANGE)
                elif name == "levels":
                    out[name] = _clamp(int(raw), *LEVELS_RANGE)
                elif name in ("bay_width", "bay_depth", "level_height"):
                    out[name] = _clamp(float(raw), *DIMENSION_RANGE)
                elif name == "pallet_fill":
                    out[name] = _clamp(int(raw), *FILL_RANGE)
                elif name.endswith("_color"):
                    out[name] = raw if isinstance(raw, str) and HEX_COLOR.match(raw) else defaults[name]
                else:
                    out[name] = bool(raw)
            except (TypeError, ValueError):
                out[name] = defaults[name]
            if out[name] != raw:
                logger.warning("Clamped rack config %s: %r -> %r", name, raw, out[name])
        return cls(**out)

    def edited(self, **changes: Any) -> "RackConfig":
        """Return a copy with changes applied through the clamping boundary."""
        merged = self.model_dump()
        merged.update(changes)
        return RackConfig.clamped(**merged)

    @property
    def total_height(self) -> float:
        return self.levels * self.level_height

    @property
    def total_width(self) -> float:
        return self.bays * self.bay_width


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    z: float = 0.0


class Rack(BaseModel):
    """One rack placed on the warehouse floor."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    position: Position = Position()
    rotation: float = 0.0
    config: RackConfig = RackConfig()

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        return validate_rack_id(v)

    def to_json(self) -> Dict[str, Any]:
        """camelCase document used by persistence and snapshots."""
        return {
            "id": self.id,
            "name": self.name,
            "position": {"x": self.position.x, "z": self.position.z},
            "rotation": self.rotation,
            "config": self.config.model_dump(by_alias=True),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Rack":
        pos = data.get("position") or {}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            position=Position(x=float(pos.get("x", 0.0)), z=float(pos.get("z", 0.0))),
            rotation=float(data.get("rotation", 0.0) or 0.0),
            config=RackConfig.clamped(**(data.get("config") or {})),
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MaintenanceRecord(BaseModel):
    """Append-only maintenance/inspection entry for one component."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    type: MaintenanceType
    description: str
    technician: Optional[str] = None
    status: RecordStatus
    timestamp: datetime
    component_id: str = Field(alias="componentId")
    images: List[str] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def _check_description(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("description is required")
        return v.strip()

    @field_validator("timestamp")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "technician": self.technician or "",
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "componentId": self.component_id,
            "images": list(self.images),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any], component_id: Optional[str] = None) -> "MaintenanceRecord":
        ts = str(data["timestamp"]).replace("Z", "+00:00")
        return cls(
            id=int(data["id"]),
            type=MaintenanceType(data["type"]),
            description=data["description"],
            technician=data.get("technician") or None,
            status=RecordStatus(data["status"]),
            timestamp=datetime.fromisoformat(ts),
            component_id=component_id or data["componentId"],
            images=list(data.get("images") or []),
        )
