"""
Scene builder.

Turns racks plus maintenance state into render objects, one subtree per
rack, and owns the component id -> render object registry that picking and
the camera read. Every geometry and material handed out by the resource pool
is released when its subtree is replaced.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from racking.identity import ComponentKind, Side, belongs_to_rack, component_label
from racking.layout import (
    ComponentMetadata,
    LayoutElement,
    PalletDraw,
    Role,
    Shape,
    box_corners,
    compose,
    layout_rack,
    pallet_rng,
    rack_transform,
)
from racking.materials import (
    Material,
    days_since_inspection,
    pallet_finish,
    resolve_deck_material,
    resolve_material,
)
from racking.models import HealthStatus, MaintenanceRecord, Rack, ViewMode, utcnow

logger = logging.getLogger(__name__)

INDICATOR_COLOR = "#ff6600"
LOCATOR_COLOR = "#00ff88"

_INDICATOR_RADIUS = {
    ComponentKind.UPRIGHT: 0.1,
    ComponentKind.BEAM: 0.08,
    ComponentKind.CROSSBAR: 0.06,
}


class ResourceError(RuntimeError):
    """A render resource was released twice or never came from this pool."""


@dataclass(eq=False)
class GeometryHandle:
    shape: Shape
    size: Tuple[float, float, float]
    radius: Optional[float] = None
    disposed: bool = False


@dataclass(eq=False)
class MaterialHandle:
    material: Material
    disposed: bool = False


class ResourcePool:
    """Tracks every live geometry/material so leaks and double frees are visible."""

    def __init__(self):
        self._live: set = set()
        self.allocated = 0
        self.released = 0

    def _track(self, handle):
        self._live.add(id(handle))
        self.allocated += 1
        return handle

    def geometry(self, shape: Shape, size, radius: Optional[float] = None) -> GeometryHandle:
        return self._track(GeometryHandle(shape=shape, size=tuple(size), radius=radius))

    def material(self, material: Material) -> MaterialHandle:
        return self._track(MaterialHandle(material=material))

    def dispose(self, handle) -> None:
        if handle.disposed or id(handle) not in self._live:
            raise ResourceError(f"{type(handle).__name__} released twice or not owned by this pool")
        handle.disposed = True
        self._live.discard(id(handle))
        self.released += 1

    def live_count(self) -> int:
        return len(self._live)


@dataclass(eq=False)
class RenderObject:
    key: str
    rack_id: str
    role: Role
    geometry: GeometryHandle
    material: MaterialHandle
    matrix: np.ndarray
    meta: Optional[ComponentMetadata] = None
    addressable: bool = False
    decoration: bool = False
    parent_id: Optional[str] = None
    label: Optional[str] = None

    @property
    def component_id(self) -> Optional[str]:
        return self.meta.ref.component_id if self.meta is not None else None

    @property
    def kind(self) -> Optional[ComponentKind]:
        return self.meta.kind if self.meta is not None else None

    @property
    def is_indicator(self) -> bool:
        return self.role == Role.INDICATOR

    @property
    def position(self) -> np.ndarray:
        return self.matrix[:3, 3].copy()

    def corners(self) -> np.ndarray:
        """World-space corners of the object's oriented bounding box."""
        return (self.matrix @ box_corners(self.geometry.size).T).T[:, :3]

    def world_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        pts = self.corners()
        return pts.min(axis=0), pts.max(axis=0)


@dataclass
class RackSubtree:
    rack: Rack
    transform: np.ndarray
    objects: List[RenderObject]
    fingerprint: tuple


class Registry:
    """
    Read-only view for consumers: addressable component ids map to their
    representative object, and objects() yields every object in the scene,
    decorations and indicators included.
    """

    def __init__(self, subtrees: Sequence[RackSubtree] = ()):
        self._objects: Tuple[RenderObject, ...] = tuple(o for s in subtrees for o in s.objects)
        self._by_id: Dict[str, RenderObject] = {}
        self._by_key: Dict[str, RenderObject] = {}
        self._racks: Dict[str, Rack] = {s.rack.id: s.rack for s in subtrees}
        for obj in self._objects:
            self._by_key[obj.key] = obj
            if obj.addressable:
                self._by_id[obj.component_id] = obj

    def get(self, component_id: str) -> Optional[RenderObject]:
        return self._by_id.get(component_id)

    def by_key(self, key: str) -> Optional[RenderObject]:
        return self._by_key.get(key)

    def objects(self) -> Iterator[RenderObject]:
        return iter(self._objects)

    def component_ids(self) -> List[str]:
        return list(self._by_id)

    def rack(self, rack_id: str) -> Optional[Rack]:
        return self._racks.get(rack_id)

    def racks(self) -> List[Rack]:
        return list(self._racks.values())

    def label(self, component_id: str) -> str:
        obj = self._by_id.get(component_id)
        return obj.label if obj is not None and obj.label else component_id

    def __contains__(self, component_id: str) -> bool:
        return component_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


@dataclass(frozen=True)
class SceneState:
    """Everything a rebuild reads. Supplied already validated by the caller."""

    racks: Tuple[Rack, ...]
    records: Mapping[str, Sequence[MaintenanceRecord]] = field(default_factory=dict)
    health: Mapping[str, HealthStatus] = field(default_factory=dict)
    view_mode: ViewMode = ViewMode.NORMAL
    selected_component: Optional[str] = None
    selected_rack_id: Optional[str] = None
    now: Optional[datetime] = None


@dataclass(frozen=True)
class Locator:
    """Ring + arrow marker drawn over the selected component."""

    component_id: str
    ring_center: Tuple[float, float, float]
    ring_radius: float
    arrow_base_y: float
    color: str = LOCATOR_COLOR

    @property
    def ring(self) -> Tuple[float, float]:
        return self.ring_radius * 0.8, self.ring_radius

    @property
    def glow_ring(self) -> Tuple[float, float]:
        return self.ring_radius * 1.1, self.ring_radius * 1.3


def _base_color(rack: Rack, kind: ComponentKind) -> str:
    cfg = rack.config
    if kind in (ComponentKind.UPRIGHT, ComponentKind.CONNECTOR, ComponentKind.BRACE):
        return cfg.frame_color
    if kind == ComponentKind.BEAM:
        return cfg.beam_color
    if kind == ComponentKind.CROSSBAR:
        return cfg.crossbar_color
    if kind == ComponentKind.DECK:
        return cfg.wire_deck_color
    return cfg.pallet_color


def _indicator_center(element: LayoutElement, rack: Rack) -> Tuple[float, float, float]:
    cx, cy, cz = element.center
    if element.kind == ComponentKind.UPRIGHT:
        return cx, element.size[1] + 0.2, cz
    if element.kind == ComponentKind.BEAM:
        half = rack.config.bay_depth / 2
        return cx, cy + 0.2, half if element.meta.side == Side.FRONT else -half
    return cx, cy + 0.15, cz


class SceneBuilder:
    """
    Sole owner and mutator of the render subtrees and the registry.

    rebuild() regenerates every rack; update() only regenerates racks whose
    inputs changed. Both build the new subtrees before releasing the replaced
    ones, and publish the new registry in a single assignment at the end. A
    failed build leaves the previous scene and its resources untouched.
    """

    def __init__(self, pallet_draw: PalletDraw = PalletDraw.REROLL):
        self.pallet_draw = PalletDraw(pallet_draw)
        self.pool = ResourcePool()
        self._subtrees: Dict[str, RackSubtree] = {}
        self._registry = Registry()
        self._selected: Optional[str] = None
        self.rebuild_count = 0
        self.racks_rebuilt = 0

    @property
    def registry(self) -> Registry:
        return self._registry

    def subtrees(self) -> List[RackSubtree]:
        return list(self._subtrees.values())

    # -- building -------------------------------------------------------

    def _fingerprint(self, rack: Rack, state: SceneState, now: datetime) -> tuple:
        records = tuple(sorted(
            (cid, tuple(r.id for r in recs))
            for cid, recs in state.records.items()
            if recs and belongs_to_rack(cid, rack.id)
        ))
        health = tuple(sorted(
            (cid, str(getattr(h, "value", h))) for cid, h in state.health.items() if belongs_to_rack(cid, rack.id)
        ))
        selected = state.selected_component if (
            state.selected_component and belongs_to_rack(state.selected_component, rack.id)
        ) else None
        days = ()
        if ViewMode(state.view_mode) == ViewMode.HEATMAP:
            days = tuple(days_since_inspection(state.records.get(cid), now) for cid, _ in records)
        return (rack.model_dump_json(), ViewMode(state.view_mode).value, selected, records, health, days)

    def _build_rack(self, rack: Rack, state: SceneState, now: datetime) -> RackSubtree:
        fingerprint = self._fingerprint(rack, state, now)
        view_mode = ViewMode(state.view_mode)
        rack_m = rack_transform(rack)
        objects: List[RenderObject] = []
        day_cache: Dict[str, int] = {}

        def days_since(cid: str) -> int:
            if cid not in day_cache:
                day_cache[cid] = days_since_inspection(state.records.get(cid), now)
            return day_cache[cid]

        def add(element_key, role, shape, size, radius, material, matrix, **kw) -> RenderObject:
            obj = RenderObject(
                key=f"{element_key}#{len(objects)}",
                rack_id=rack.id,
                role=role,
                geometry=self.pool.geometry(shape, size, radius),
                material=self.pool.material(material),
                matrix=matrix,
                **kw,
            )
            objects.append(obj)
            return obj

        try:
            deck_materials: Dict[str, Material] = {}
            for el in layout_rack(rack, pallet_rng(rack, self.pallet_draw)):
                cid = el.component_id
                selected = cid == state.selected_component
                has_records = bool(state.records.get(cid))
                base = _base_color(rack, el.kind)

                if el.role == Role.LOAD_BOX:
                    material = Material(color=el.color, metalness=0.0, roughness=0.9)
                elif el.kind == ComponentKind.DECK:
                    if cid not in deck_materials:
                        deck_materials[cid] = resolve_deck_material(
                            cid, base, view_mode, selected, has_records, state.health, days_since
                        )
                    material = deck_materials[cid]
                else:
                    material = resolve_material(cid, base, view_mode, selected, has_records, state.health, days_since)
                    if el.kind == ComponentKind.PALLET:
                        material = pallet_finish(material)

                add(
                    cid, el.role, el.shape, el.size, el.radius, material,
                    rack_m @ compose(el.center, el.rotation),
                    meta=el.meta,
                    addressable=el.addressable,
                    decoration=el.decoration,
                    label=component_label(rack.name, el.meta.ref) if el.addressable else None,
                )

                if (
                    el.addressable
                    and el.kind in _INDICATOR_RADIUS
                    and has_records
                    and not selected
                    and view_mode == ViewMode.NORMAL
                ):
                    r = _INDICATOR_RADIUS[el.kind]
                    add(
                        cid, Role.INDICATOR, Shape.SPHERE, (2 * r, 2 * r, 2 * r), r,
                        Material(color=INDICATOR_COLOR),
                        rack_m @ compose(_indicator_center(el, rack)),
                        parent_id=cid,
                    )
        except Exception:
            self._release(objects)
            raise

        return RackSubtree(
            rack=rack,
            transform=rack_m,
            objects=objects,
            fingerprint=fingerprint,
        )

    def _dispose(self, subtree: RackSubtree) -> None:
        self._release(subtree.objects)

    def _release(self, objects: List[RenderObject]) -> None:
        for obj in objects:
            self.pool.dispose(obj.geometry)
            self.pool.dispose(obj.material)

    def _publish(self, subtrees: Dict[str, RackSubtree], state: SceneState) -> Registry:
        registry = Registry(list(subtrees.values()))
        self._subtrees = subtrees
        self._registry = registry
        self._selected = state.selected_component
        self.rebuild_count += 1
        logger.debug(
            "Scene rebuilt: %d racks, %d components, %d objects, %d live resources",
            len(subtrees), len(registry), sum(len(s.objects) for s in subtrees.values()),
            self.pool.live_count(),
        )
        return registry

    def rebuild(self, state: SceneState) -> Registry:
        """Regenerate every rack subtree from scratch."""
        now = state.now or utcnow()
        fresh = self._build_all(state.racks, state, now)
        for subtree in self._subtrees.values():
            self._dispose(subtree)
        self.racks_rebuilt += len(fresh)
        return self._publish(fresh, state)

    def update(self, state: SceneState) -> Registry:
        """Regenerate only the racks whose inputs changed since the last pass."""
        now = state.now or utcnow()
        out, stale = {}, []
        for rack in state.racks:
            current = self._subtrees.get(rack.id)
            if current is not None and current.fingerprint == self._fingerprint(rack, state, now):
                out[rack.id] = current
            else:
                stale.append(rack)
        fresh = self._build_all(stale, state, now)

        kept = {id(s) for s in out.values()}
        for subtree in self._subtrees.values():
            if id(subtree) not in kept:
                self._dispose(subtree)
        self.racks_rebuilt += len(fresh)
        out.update(fresh)
        return self._publish({rack.id: out[rack.id] for rack in state.racks}, state)

    def _build_all(self, racks, state: SceneState, now: datetime) -> Dict[str, RackSubtree]:
        """Build subtrees for racks; nothing stays allocated if one of them fails."""
        fresh: Dict[str, RackSubtree] = {}
        try:
            for rack in racks:
                fresh[rack.id] = self._build_rack(rack, state, now)
        except Exception:
            for subtree in fresh.values():
                self._dispose(subtree)
            raise
        return fresh

    def clear(self) -> None:
        for subtree in self._subtrees.values():
            self._dispose(subtree)
        self._subtrees = {}
        self._registry = Registry()
        self._selected = None

    # -- queries --------------------------------------------------------

    def locator(self) -> Optional[Locator]:
        """Marker geometry for the selected component, None when nothing is selected."""
        if not self._selected:
            return None
        obj = self._registry.get(self._selected)
        if obj is None:
            return None
        lo, hi = obj.world_bounds()
        size = hi - lo
        footprint = max(size[0], size[2])
        kind = obj.kind
        if kind in (ComponentKind.UPRIGHT, ComponentKind.BRACE):
            ring = max(footprint * 2.5, 0.3)
        elif kind in (ComponentKind.CONNECTOR, ComponentKind.CROSSBAR):
            ring = max(footprint * 1.5, 0.4)
        else:
            ring = min(footprint * 0.6, 2.0)

        pos = obj.position
        center = (pos[0], lo[1] + 0.05, pos[2]) if kind == ComponentKind.UPRIGHT else tuple(pos)
        return Locator(
            component_id=self._selected,
            ring_center=tuple(float(v) for v in center),
            ring_radius=float(ring),
            arrow_base_y=float(hi[1] + 0.5 + 0.3),
        )

    def layout_table(self) -> pd.DataFrame:
        """One row per addressable component with world-space bounds, for exporters."""
        rows = []
        for obj in self._registry.objects():
            if not obj.addressable:
                continue
            ref = obj.meta.ref
            lo, hi = obj.world_bounds()
            rows.append({
                "component_id": obj.component_id,
                "rack_id": obj.rack_id,
                "kind": ref.kind.value,
                "bay": ref.bay,
                "level": ref.level,
                "side": ref.side.value if ref.side else None,
                "index": ref.index,
                "label": obj.label,
                "min_x": lo[0], "min_y": lo[1], "min_z": lo[2],
                "max_x": hi[0], "max_y": hi[1], "max_z": hi[2],
            })
        columns = ["component_id", "rack_id", "kind", "bay", "level", "side", "index", "label",
                   "min_x", "min_y", "min_z", "max_x", "max_y", "max_z"]
        return pd.DataFrame(rows, columns=columns)
