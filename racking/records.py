"""
Maintenance records and component health.

Records are keyed by component id and are never edited in place: they are
appended or removed by id. Ids that no longer match any generated component
(a rack lost a bay or a level) are kept as they are.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from racking.identity import belongs_to_rack, rack_inspection_id
from racking.models import (
    HealthStatus,
    MaintenanceRecord,
    MaintenanceType,
    RecordStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


class RecordError(ValueError):
    """A maintenance record could not be created."""


class MaintenanceLog:
    """component id -> list of records, oldest first."""

    def __init__(self, records: Optional[Mapping[str, Iterable[MaintenanceRecord]]] = None):
        self._by_component: Dict[str, List[MaintenanceRecord]] = {}
        for cid, items in (records or {}).items():
            items = list(items)
            if items:
                self._by_component[cid] = items

    def _next_id(self, now: datetime) -> int:
        rid = int(now.timestamp() * 1000)
        taken = {r.id for items in self._by_component.values() for r in items}
        while rid in taken:
            rid += 1
        return rid

    def add(
        self,
        component_id: str,
        type: MaintenanceType,
        description: str,
        technician: Optional[str] = None,
        status: RecordStatus = RecordStatus.COMPLETED,
        images: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> MaintenanceRecord:
        """
        Append a record to a component.

        Raises:
            RecordError: description is empty or type/status are unknown
        """
        if not component_id:
            raise RecordError("a component must be selected")
        now = now or utcnow()
        try:
            record = MaintenanceRecord(
                id=self._next_id(now),
                type=type,
                description=description,
                technician=(technician or "").strip() or None,
                status=status,
                timestamp=now,
                component_id=component_id,
                images=list(images or []),
            )
        except ValidationError as e:
            raise RecordError(e.errors()[0]["msg"]) from e
        self._by_component.setdefault(component_id, []).append(record)
        logger.info("Added %s record %s to %s", record.type.value, record.id, component_id)
        return record

    def add_rack_inspection(self, rack_id: str, description: str, **kwargs) -> MaintenanceRecord:
        return self.add(rack_inspection_id(rack_id), MaintenanceType.INSPECTION, description, **kwargs)

    def remove(self, component_id: str, record_id: int) -> bool:
        """Remove one record. Returns False when nothing matched."""
        items = self._by_component.get(component_id, [])
        kept = [r for r in items if r.id != record_id]
        if len(kept) == len(items):
            return False
        if kept:
            self._by_component[component_id] = kept
        else:
            del self._by_component[component_id]
        return True

    def attach_image(self, original_path: str, new_path: str) -> bool:
        """Insert an annotated image right after its original in the owning record."""
        for cid, items in self._by_component.items():
            for pos, record in enumerate(items):
                if original_path in record.images:
                    images = list(record.images)
                    images.insert(images.index(original_path) + 1, new_path)
                    items[pos] = record.model_copy(update={"images": images})
                    return True
        return False

    def has_records(self, component_id: str) -> bool:
        return bool(self._by_component.get(component_id))

    def get(self, component_id: str) -> List[MaintenanceRecord]:
        return list(self._by_component.get(component_id, []))

    def for_component(self, component_id: str) -> List[MaintenanceRecord]:
        """Newest first."""
        return sorted(self.get(component_id), key=lambda r: r.timestamp, reverse=True)

    def for_rack(self, rack_id: str) -> List[Tuple[MaintenanceRecord, bool]]:
        """All records of a rack, newest first, flagged True for rack-level inspections."""
        rack_level = rack_inspection_id(rack_id)
        out = [
            (r, cid == rack_level)
            for cid, items in self._by_component.items()
            if belongs_to_rack(cid, rack_id)
            for r in items
        ]
        return sorted(out, key=lambda pair: pair[0].timestamp, reverse=True)

    def all_sorted(self) -> List[MaintenanceRecord]:
        return sorted(
            (r for items in self._by_component.values() for r in items),
            key=lambda r: r.timestamp,
            reverse=True,
        )

    def component_ids(self) -> List[str]:
        return list(self._by_component)

    def as_mapping(self) -> Dict[str, Tuple[MaintenanceRecord, ...]]:
        """Immutable view handed to the scene builder."""
        return {cid: tuple(items) for cid, items in self._by_component.items()}

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_component.values())

    def to_json(self) -> Dict[str, list]:
        return {cid: [r.to_json() for r in items] for cid, items in self._by_component.items()}

    @classmethod
    def from_json(cls, data: Mapping[str, list]) -> "MaintenanceLog":
        records = {}
        for cid, items in (data or {}).items():
            parsed = []
            for item in items or []:
                try:
                    parsed.append(MaintenanceRecord.from_json(item, component_id=cid))
                except (KeyError, ValueError) as e:
                    logger.warning("Skipping malformed record for %s: %s", cid, e)
            records[cid] = parsed
        return cls(records)


class HealthMap:
    """component id -> health rating, last write wins."""

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries: Dict[str, HealthStatus] = {}
        for cid, status in (entries or {}).items():
            try:
                self._entries[cid] = HealthStatus(status)
            except ValueError:
                logger.warning("Ignoring unknown health status %r for %s", status, cid)

    def set(self, component_id: str, status) -> None:
        self._entries[component_id] = HealthStatus(status)

    def get(self, component_id: str) -> Optional[HealthStatus]:
        return self._entries.get(component_id)

    def clear(self, component_id: str) -> None:
        self._entries.pop(component_id, None)

    def as_mapping(self) -> Dict[str, HealthStatus]:
        return dict(self._entries)

    def rack_summary(self, rack_id: str) -> Dict[str, int]:
        summary = {"good": 0, "warning": 0, "critical": 0, "total": 0}
        for cid, status in self._entries.items():
            if not belongs_to_rack(cid, rack_id):
                continue
            summary["total"] += 1
            if status == HealthStatus.GOOD:
                summary["good"] += 1
            elif status == HealthStatus.FAIR:
                summary["warning"] += 1
            else:
                summary["critical"] += 1
        return summary

    def __len__(self) -> int:
        return len(self._entries)

    def to_json(self) -> Dict[str, str]:
        return {cid: status.value for cid, status in self._entries.items()}
