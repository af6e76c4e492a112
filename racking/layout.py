"""
Geometry layout engine.

Given a rack, enumerate every structural member and compute its placement in
the rack's local frame (y up, x along the bays, z across the depth with the
front face at +z). The same config always yields the same set of component
ids; only pallet occupancy depends on the random draw.
"""

import colorsys
import hashlib
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union

import numpy as np

from racking.identity import ComponentKind, ComponentRef, Side
from racking.models import Rack, RackConfig

UPRIGHT_SIZE = 0.08
BASE_CLEARANCE = 0.3
FRAME_OFFSET = 0.15
CONNECTOR_HEIGHT = 0.04
BRACE_RADIUS = 0.015
BEAM_HEIGHT = 0.1
BEAM_DEPTH = 0.05
BEAM_OFFSET = 0.1
CROSSBAR_COUNT = 3
CROSSBAR_WIDTH = 0.04
CROSSBAR_HEIGHT = 0.06
WIRE_RADIUS = 0.008
LONG_WIRES = 8
CROSS_WIRES = 4
DECK_FRAME_THICKNESS = 0.015
DECK_FRAME_HEIGHT = 0.02
PALLET_HEIGHT = 0.15
PALLET_GAP = 0.02

Vec3 = Tuple[float, float, float]


class Shape(str, Enum):
    BOX = "box"
    CYLINDER = "cylinder"
    SPHERE = "sphere"


class Role(str, Enum):
    STRUCTURE = "structure"
    DECK_MEMBER = "deck_member"
    LOAD_BOX = "load_box"
    # assigned by the scene builder, never emitted by layout_rack
    INDICATOR = "indicator"


class PalletDraw(str, Enum):
    """How pallet occupancy is drawn on each rebuild."""

    REROLL = "reroll"
    SEEDED = "seeded"


# Tagged metadata, one class per component kind.

@dataclass(frozen=True)
class UprightMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.UPRIGHT
    rack_id: str
    bay: int
    side: Side

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, side=self.side)


@dataclass(frozen=True)
class ConnectorMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.CONNECTOR
    rack_id: str
    bay: int
    level: int

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level)


@dataclass(frozen=True)
class BraceMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.BRACE
    rack_id: str
    bay: int
    level: int

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level)


@dataclass(frozen=True)
class BeamMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.BEAM
    rack_id: str
    bay: int
    level: int
    side: Side

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level, side=self.side)


@dataclass(frozen=True)
class CrossbarMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.CROSSBAR
    rack_id: str
    bay: int
    level: int
    index: int

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level, index=self.index)


@dataclass(frozen=True)
class DeckMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.DECK
    rack_id: str
    bay: int
    level: int

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level)


@dataclass(frozen=True)
class PalletMeta:
    kind: ClassVar[ComponentKind] = ComponentKind.PALLET
    rack_id: str
    bay: int
    level: int

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.rack_id, self.kind, self.bay, level=self.level)


ComponentMetadata = Union[UprightMeta, ConnectorMeta, BraceMeta, BeamMeta, CrossbarMeta, DeckMeta, PalletMeta]


@dataclass(frozen=True)
class LayoutElement:
    """
    One placed member. `size` is the extent of the member's local bounding
    box; cylinders run along their local y axis and also carry `radius`.
    """

    meta: ComponentMetadata
    shape: Shape
    center: Vec3
    size: Vec3
    rotation: Vec3 = (0.0, 0.0, 0.0)
    radius: Optional[float] = None
    addressable: bool = True
    decoration: bool = False
    role: Role = Role.STRUCTURE
    color: Optional[str] = None

    @property
    def component_id(self) -> str:
        return self.meta.ref.component_id

    @property
    def kind(self) -> ComponentKind:
        return self.meta.kind


def _box(meta, center, size, **kw) -> LayoutElement:
    return LayoutElement(meta=meta, shape=Shape.BOX, center=tuple(center), size=tuple(size), **kw)


def _cylinder(meta, center, radius, length, rotation, **kw) -> LayoutElement:
    return LayoutElement(
        meta=meta,
        shape=Shape.CYLINDER,
        center=tuple(center),
        size=(2 * radius, length, 2 * radius),
        rotation=tuple(rotation),
        radius=radius,
        **kw,
    )


def pallet_rng(rack: Rack, policy: PalletDraw = PalletDraw.REROLL) -> random.Random:
    """
    Random source for pallet occupancy and load boxes.

    REROLL draws fresh on every call, so pallets move on every rebuild.
    SEEDED derives the seed from the rack id and its config, so the draw only
    changes when the configuration does.
    """
    if PalletDraw(policy) == PalletDraw.SEEDED:
        key = rack.id + "|" + rack.config.model_dump_json()
        seed = int(hashlib.sha1(key.encode()).hexdigest()[:16], 16)
        return random.Random(seed)
    return random.Random()


def _load_box_color(rng: random.Random) -> str:
    r, g, b = colorsys.hls_to_rgb(rng.random(), 0.5, 0.3)
    return "#{:02x}{:02x}{:02x}".format(int(r * 255), int(g * 255), int(b * 255))


def layout_rack(rack: Rack, rng: Optional[random.Random] = None) -> List[LayoutElement]:
    """
    Enumerate every member of a rack with its local placement.

    Args:
        rack: Rack to lay out
        rng: Random source for pallets (see pallet_rng); only consulted when
            pallets are shown

    Returns:
        Elements in a fixed order: per bay boundary the uprights, braces and
        connectors, then per bay and level the beams, crossbars, deck and pallet.
    """
    cfg: RackConfig = rack.config
    if cfg.bays < 1 or cfg.levels < 1:
        return []
    if rng is None:
        rng = random.Random()

    rid = rack.id
    W, D, LH = cfg.bay_width, cfg.bay_depth, cfg.level_height
    total_height = cfg.levels * LH + BASE_CLEARANCE
    elements: List[LayoutElement] = []

    def side_z(side: Side, inset: float = 0.0) -> float:
        return D / 2 - inset if side == Side.FRONT else -D / 2 + inset

    for bay in range(cfg.bays + 1):
        x = bay * W
        for side in Side:
            elements.append(_box(
                UprightMeta(rid, bay, side),
                (x, total_height / 2, side_z(side)),
                (UPRIGHT_SIZE, total_height, UPRIGHT_SIZE),
            ))

        # one brace per bay cell, drawn in the frame at the bay's left boundary
        if bay < cfg.bays:
            length = math.hypot(LH, D)
            angle = math.atan2(LH, D)
            for level in range(cfg.levels):
                elements.append(_cylinder(
                    BraceMeta(rid, bay, level),
                    (x, level * LH + LH / 2 + FRAME_OFFSET, 0.0),
                    BRACE_RADIUS,
                    length,
                    (math.pi / 2 - angle, 0.0, 0.0),
                ))

        for level in range(cfg.levels + 1):
            elements.append(_box(
                ConnectorMeta(rid, bay, level),
                (x, level * LH + FRAME_OFFSET, 0.0),
                (UPRIGHT_SIZE, CONNECTOR_HEIGHT, D - UPRIGHT_SIZE),
            ))

    deck_width = W - UPRIGHT_SIZE * 2
    deck_depth = D - BEAM_DEPTH * 2
    spacing = (W - UPRIGHT_SIZE * 2) / (CROSSBAR_COUNT + 1)

    for bay in range(cfg.bays):
        x = bay * W + W / 2
        for level in range(1, cfg.levels + 1):
            y = level * LH + BEAM_OFFSET
            top = y + BEAM_HEIGHT / 2

            for side in Side:
                elements.append(_box(
                    BeamMeta(rid, bay, level, side),
                    (x, y, side_z(side, BEAM_DEPTH / 2)),
                    (W - UPRIGHT_SIZE, BEAM_HEIGHT, BEAM_DEPTH),
                ))

            for i in range(CROSSBAR_COUNT):
                elements.append(_box(
                    CrossbarMeta(rid, bay, level, i),
                    (bay * W + UPRIGHT_SIZE + spacing * (i + 1), top, 0.0),
                    (CROSSBAR_WIDTH, CROSSBAR_HEIGHT, deck_depth),
                ))

            if cfg.show_wire_decks:
                elements.extend(_deck(DeckMeta(rid, bay, level), x, top + 0.01, deck_width, deck_depth))

            if cfg.show_pallets and rng.random() * 100 < cfg.pallet_fill:
                meta = PalletMeta(rid, bay, level)
                pw, pd = W * 0.85, D * 0.8
                elements.append(_box(
                    meta,
                    (x, top + PALLET_HEIGHT / 2 + PALLET_GAP, 0.0),
                    (pw, PALLET_HEIGHT, pd),
                ))
                box_height = 0.3 + rng.random() * 0.5
                elements.append(_box(
                    meta,
                    (x, top + PALLET_HEIGHT + box_height / 2 + PALLET_GAP, 0.0),
                    (pw * 0.9, box_height, pd * 0.9),
                    addressable=False,
                    decoration=True,
                    role=Role.LOAD_BOX,
                    color=_load_box_color(rng),
                ))

    return elements


def _deck(meta: DeckMeta, x: float, y: float, width: float, depth: float) -> List[LayoutElement]:
    """Wire deck: longitudinal wires, lateral wires and a perimeter frame.
    Only the first longitudinal wire is addressable."""
    out = []
    for w in range(LONG_WIRES):
        offset = -width / 2 + (width / (LONG_WIRES - 1)) * w
        out.append(_cylinder(
            meta, (x + offset, y, 0.0), WIRE_RADIUS, depth, (math.pi / 2, 0.0, 0.0),
            addressable=(w == 0), role=Role.DECK_MEMBER,
        ))
    for c in range(CROSS_WIRES):
        offset = -depth / 2 + (depth / (CROSS_WIRES + 1)) * (c + 1)
        out.append(_cylinder(
            meta, (x, y, offset), WIRE_RADIUS * 0.7, width, (0.0, 0.0, math.pi / 2),
            addressable=False, role=Role.DECK_MEMBER,
        ))
    for z in (depth / 2, -depth / 2):
        out.append(_box(
            meta, (x, y, z), (width, DECK_FRAME_HEIGHT, DECK_FRAME_THICKNESS),
            addressable=False, role=Role.DECK_MEMBER,
        ))
    for dx in (-width / 2, width / 2):
        out.append(_box(
            meta, (x + dx, y, 0.0), (DECK_FRAME_THICKNESS, DECK_FRAME_HEIGHT, depth),
            addressable=False, role=Role.DECK_MEMBER,
        ))
    return out


# Transforms

def euler_matrix(rx: float, ry: float, rz: float) -> np.ndarray:
    """3x3 rotation for XYZ-ordered Euler angles (R = Rx @ Ry @ Rz)."""
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)
    Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return Rx @ Ry @ Rz


def compose(center: Vec3, rotation: Vec3 = (0.0, 0.0, 0.0)) -> np.ndarray:
    m = np.eye(4)
    m[:3, :3] = euler_matrix(*rotation)
    m[:3, 3] = center
    return m


def rack_transform(rack: Rack) -> np.ndarray:
    """Local-to-world matrix: rotation about y, then translation on the floor."""
    return compose((rack.position.x, 0.0, rack.position.z), (0.0, rack.rotation, 0.0))


def element_transform(element: LayoutElement, rack: Rack) -> np.ndarray:
    return rack_transform(rack) @ compose(element.center, element.rotation)


def box_corners(size: Vec3) -> np.ndarray:
    """8 corners of a centered box as homogeneous rows."""
    hx, hy, hz = (s / 2 for s in size)
    return np.array(
        [[sx * hx, sy * hy, sz * hz, 1.0] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)]
    )


def world_bounds(element: LayoutElement, rack: Rack) -> Tuple[np.ndarray, np.ndarray]:
    """Axis-aligned world bounding box (min, max) of an element."""
    pts = (element_transform(element, rack) @ box_corners(element.size).T).T[:, :3]
    return pts.min(axis=0), pts.max(axis=0)


def to_world(rack: Rack, point: Vec3) -> np.ndarray:
    return (rack_transform(rack) @ np.array([*point, 1.0]))[:3]


def rack_dimensions(rack: Rack) -> Tuple[float, float, float]:
    """(width, depth, height) in meters, height including base clearance."""
    cfg = rack.config
    return cfg.bays * cfg.bay_width, cfg.bay_depth, cfg.levels * cfg.level_height + BASE_CLEARANCE


def rack_footprint(rack: Rack) -> np.ndarray:
    """World-space corners (x, z) of the floor footprint, counter-clockwise."""
    width, depth, _ = rack_dimensions(rack)
    half = UPRIGHT_SIZE / 2
    local = [(-half, 0.0, depth / 2), (width + half, 0.0, depth / 2),
             (width + half, 0.0, -depth / 2), (-half, 0.0, -depth / 2)]
    return np.array([to_world(rack, p)[[0, 2]] for p in local])


def rack_center(rack: Rack) -> np.ndarray:
    """Footprint center at half the storage height, in world space."""
    cfg = rack.config
    c = to_world(rack, (cfg.bays * cfg.bay_width / 2, 0.0, 0.0))
    c[1] = cfg.levels * cfg.level_height / 2
    return c
