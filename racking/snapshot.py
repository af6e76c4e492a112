"""
JSON snapshot export/import of racks, maintenance records and health ratings.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

import orjson
from pydantic import ValidationError

from racking.collection import default_rack
from racking.models import Rack, RackConfig, utcnow
from racking.records import HealthMap, MaintenanceLog

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "2.0"


class SnapshotError(ValueError):
    """A snapshot file could not be read."""


@dataclass
class Snapshot:
    racks: List[Rack]
    log: Optional[MaintenanceLog] = None
    health: Optional[HealthMap] = None
    version: Optional[str] = None

    @property
    def selected_id(self) -> str:
        return self.racks[0].id


def snapshot_filename(now: Optional[datetime] = None) -> str:
    return f"rack-maintenance-{(now or utcnow()).strftime('%Y-%m-%d')}.json"


def export_snapshot(
    racks: Iterable[Rack],
    log: MaintenanceLog,
    health: HealthMap,
    now: Optional[datetime] = None,
) -> bytes:
    now = now or utcnow()
    payload = {
        "version": SNAPSHOT_VERSION,
        "exportDate": now.isoformat().replace("+00:00", "Z"),
        "racks": [r.to_json() for r in racks],
        "maintenanceRecords": log.to_json(),
        "componentHealth": health.to_json(),
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def import_snapshot(data: bytes) -> Snapshot:
    """
    Parse an exported snapshot.

    Accepts the multi-rack format and the legacy single-config format, which
    becomes rack-1. Records and health are only returned when present, so the
    caller keeps its current ones otherwise.

    Raises:
        SnapshotError: not JSON, or neither racks nor config present
    """
    try:
        doc = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise SnapshotError("Invalid file format. Please select a valid JSON export file.") from e
    if not isinstance(doc, dict):
        raise SnapshotError("Snapshot must be a JSON object")

    has_racks = isinstance(doc.get("racks"), list) and bool(doc["racks"])
    if not has_racks and not isinstance(doc.get("config"), dict):
        raise SnapshotError("Snapshot has neither racks nor config")

    try:
        if has_racks:
            racks = [Rack.from_json(item) for item in doc["racks"]]
        else:
            base = default_rack()
            racks = [base.model_copy(update={"config": RackConfig.clamped(**doc["config"])})]
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise SnapshotError(f"Invalid rack in snapshot: {e}") from e

    if len({r.id for r in racks}) != len(racks):
        raise SnapshotError("Snapshot contains duplicate rack ids")

    log = health = None
    if isinstance(doc.get("maintenanceRecords"), dict):
        log = MaintenanceLog.from_json(doc["maintenanceRecords"])
    if isinstance(doc.get("componentHealth"), dict):
        health = HealthMap(doc["componentHealth"])

    logger.info(
        "Imported snapshot v%s: %d racks, %s records",
        doc.get("version", "1"), len(racks), len(log) if log is not None else "no",
    )
    return Snapshot(racks=racks, log=log, health=health, version=doc.get("version"))
