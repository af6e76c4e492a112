"""
Ordered set of racks on the warehouse floor plus the selected rack.

Racks are immutable; every edit swaps in a new Rack value at the same slot.
"""

import logging
import math
from typing import Any, Iterable, Iterator, List, Optional

from racking.models import Position, Rack, RackConfig

logger = logging.getLogger(__name__)

RACK_GAP = 3.0
DUPLICATE_OFFSET = 5.0


def default_rack() -> Rack:
    return Rack(id="rack-1", name="Rack 1")


class RackCollection:
    def __init__(self, racks: Optional[Iterable[Rack]] = None, selected_id: Optional[str] = None):
        self._racks: List[Rack] = list(racks or [])
        if not self._racks:
            self._racks = [default_rack()]
        ids = [r.id for r in self._racks]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate rack ids: {ids}")
        self._selected = selected_id if selected_id in ids else self._racks[0].id

    def __iter__(self) -> Iterator[Rack]:
        return iter(self._racks)

    def __len__(self) -> int:
        return len(self._racks)

    def __contains__(self, rack_id: str) -> bool:
        return any(r.id == rack_id for r in self._racks)

    @property
    def racks(self) -> tuple:
        return tuple(self._racks)

    @property
    def selected_id(self) -> str:
        return self._selected

    @property
    def selected(self) -> Rack:
        return self.get(self._selected)

    def get(self, rack_id: str) -> Rack:
        for rack in self._racks:
            if rack.id == rack_id:
                return rack
        raise KeyError(rack_id)

    def select(self, rack_id: str) -> Rack:
        rack = self.get(rack_id)
        self._selected = rack_id
        return rack

    def _replace(self, rack: Rack) -> Rack:
        for i, existing in enumerate(self._racks):
            if existing.id == rack.id:
                self._racks[i] = rack
                return rack
        raise KeyError(rack.id)

    def _next_id(self) -> str:
        taken = {r.id for r in self._racks}
        n = len(self._racks) + 1
        while f"rack-{n}" in taken:
            n += 1
        return f"rack-{n}"

    def add_rack(self, config: Optional[RackConfig] = None) -> Rack:
        """Append a default rack 3 m to the right of the rightmost one and select it."""
        right = max([0.0] + [r.position.x + r.config.bays * r.config.bay_width for r in self._racks])
        rack = Rack(
            id=self._next_id(),
            name=f"Rack {len(self._racks) + 1}",
            position=Position(x=right + RACK_GAP, z=0.0),
            config=config or RackConfig(),
        )
        self._racks.append(rack)
        self._selected = rack.id
        logger.info("Added %s at x=%.2f", rack.id, rack.position.x)
        return rack

    def duplicate_rack(self, rack_id: str) -> Rack:
        source = self.get(rack_id)
        rack = Rack(
            id=self._next_id(),
            name=f"{source.name} (Copy)",
            position=Position(x=source.position.x + DUPLICATE_OFFSET, z=source.position.z),
            rotation=source.rotation,
            config=source.config,
        )
        self._racks.append(rack)
        self._selected = rack.id
        logger.info("Duplicated %s as %s", rack_id, rack.id)
        return rack

    def delete_rack(self, rack_id: str) -> bool:
        """Remove a rack. The last remaining rack cannot be deleted."""
        if len(self._racks) <= 1 or rack_id not in self:
            return False
        self._racks = [r for r in self._racks if r.id != rack_id]
        if self._selected == rack_id:
            self._selected = self._racks[0].id
        logger.info("Deleted %s", rack_id)
        return True

    def rename_rack(self, rack_id: str, name: str) -> Rack:
        name = (name or "").strip()
        if not name:
            raise ValueError("rack name is required")
        return self._replace(self.get(rack_id).model_copy(update={"name": name}))

    def move_rack(self, rack_id: str, x: float, z: float) -> Rack:
        return self._replace(self.get(rack_id).model_copy(update={"position": Position(x=x, z=z)}))

    def rotate_rack(self, rack_id: str, rotation: float) -> Rack:
        """Set rotation in radians about the vertical axis, normalized to [0, 2pi)."""
        return self._replace(self.get(rack_id).model_copy(update={"rotation": rotation % (2 * math.pi)}))

    def update_config(self, rack_id: str, **values: Any) -> Rack:
        rack = self.get(rack_id)
        return self._replace(rack.model_copy(update={"config": rack.config.edited(**values)}))

    def to_json(self) -> List[dict]:
        return [r.to_json() for r in self._racks]

    @classmethod
    def from_json(cls, data: Iterable[dict], selected_id: Optional[str] = None) -> "RackCollection":
        return cls([Rack.from_json(item) for item in data or []], selected_id)
