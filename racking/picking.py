"""
Pointer picking and selection gestures.

A pointer position becomes a world ray through the camera; the ray is tested
against every render object's oriented box and the nearest hit that maps to
a component wins.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from racking.camera import OrbitCamera
from racking.models import ViewMode

logger = logging.getLogger(__name__)

DRAG_THRESHOLD_PX = 3
_EPS = 1e-12


@dataclass(frozen=True)
class Ray:
    origin: np.ndarray
    direction: np.ndarray

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction


def ray_from_pointer(px: float, py: float, viewport_w: float, viewport_h: float, camera: OrbitCamera) -> Ray:
    """Unproject a pixel position (origin top-left) into a world-space ray."""
    x = px / viewport_w * 2 - 1
    y = -(py / viewport_h) * 2 + 1
    inv = np.linalg.inv(camera.projection_matrix(viewport_w / viewport_h) @ camera.view_matrix())

    def unproject(z: float) -> np.ndarray:
        p = inv @ np.array([x, y, z, 1.0])
        return p[:3] / p[3]

    near, far = unproject(-1.0), unproject(1.0)
    direction = far - near
    return Ray(origin=near, direction=direction / np.linalg.norm(direction))


def intersect(ray: Ray, obj) -> Optional[float]:
    """
    Distance along the ray to the object's oriented bounding box, or None.

    Uses a slab test in the object's local frame. Object matrices are rigid,
    so t keeps world units.
    """
    inv = np.linalg.inv(obj.matrix)
    o = (inv @ np.append(ray.origin, 1.0))[:3]
    d = inv[:3, :3] @ ray.direction
    half = np.asarray(obj.geometry.size, dtype=float) / 2

    t_near, t_far = -np.inf, np.inf
    for axis in range(3):
        if abs(d[axis]) < _EPS:
            if o[axis] < -half[axis] or o[axis] > half[axis]:
                return None
            continue
        t1 = (-half[axis] - o[axis]) / d[axis]
        t2 = (half[axis] - o[axis]) / d[axis]
        if t1 > t2:
            t1, t2 = t2, t1
        t_near, t_far = max(t_near, t1), min(t_far, t2)
        if t_near > t_far:
            return None
    if t_far < 0:
        return None
    return float(max(t_near, 0.0))


def resolve_hit(obj) -> Optional[str]:
    """Component id a hit object stands for, None when it cannot be selected."""
    if obj is None or obj.decoration:
        return None
    if obj.is_indicator:
        return obj.parent_id
    if not obj.addressable:
        return None
    return obj.component_id


def hits(ray: Ray, objects: Iterable) -> List[Tuple[float, object]]:
    """All (t, object) hits along the ray, nearest first."""
    out = []
    for obj in objects:
        t = intersect(ray, obj)
        if t is not None:
            out.append((t, obj))
    out.sort(key=lambda pair: pair[0])
    return out


def pick(px: float, py: float, camera: OrbitCamera, registry, viewport: Tuple[float, float]) -> Optional[str]:
    """
    Component under the pointer.

    Args:
        px, py: Pointer position in pixels, origin top-left
        camera: Camera the viewport renders with
        registry: Scene registry; every object is tested, decorations included
        viewport: (width, height) in pixels

    Returns:
        Component id of the nearest selectable hit, or None
    """
    w, h = viewport
    if w <= 0 or h <= 0:
        return None
    ray = ray_from_pointer(px, py, w, h, camera)
    for _, obj in hits(ray, registry.objects()):
        cid = resolve_hit(obj)
        if cid is not None:
            return cid
    return None


@dataclass
class InteractionState:
    selected_component: Optional[str] = None
    hovered_component: Optional[str] = None
    selected_rack_id: Optional[str] = None
    view_mode: ViewMode = ViewMode.NORMAL

    def select(self, component_id: Optional[str], registry=None) -> None:
        """Select a component (None clears it). The owning rack becomes the selected rack."""
        self.selected_component = component_id
        if component_id is None or registry is None:
            return
        obj = registry.get(component_id)
        if obj is not None:
            self.selected_rack_id = obj.rack_id

    def select_rack(self, rack_id: Optional[str]) -> None:
        self.selected_rack_id = rack_id


class PointerGesture:
    """
    Mouse down / move / up state machine.

    Movement past DRAG_THRESHOLD_PX turns the gesture into an orbit; hover is
    not computed while dragging and the click at mouse-up is dropped.
    """

    def __init__(self, state: InteractionState, camera: OrbitCamera, viewport: Tuple[float, float]):
        self.state = state
        self.camera = camera
        self.viewport = viewport
        self._down: Optional[Tuple[float, float]] = None
        self._last: Optional[Tuple[float, float]] = None
        self.dragging = False

    @property
    def pressed(self) -> bool:
        return self._down is not None

    def down(self, px: float, py: float) -> None:
        self._down = self._last = (px, py)
        self.dragging = False

    def move(self, px: float, py: float, registry) -> Optional[str]:
        """Orbit while pressed, otherwise update and return the hovered component."""
        if self._down is not None:
            if not self.dragging:
                dx, dy = px - self._down[0], py - self._down[1]
                if abs(dx) > DRAG_THRESHOLD_PX or abs(dy) > DRAG_THRESHOLD_PX:
                    self.dragging = True
            if self.dragging:
                self.camera.orbit(px - self._last[0], py - self._last[1])
                self._last = (px, py)
                return self.state.hovered_component
            self._last = (px, py)
        self.state.hovered_component = pick(px, py, self.camera, registry, self.viewport)
        return self.state.hovered_component

    def up(self, px: float, py: float, registry) -> Optional[str]:
        """End the gesture. A click selects what is under the pointer; a miss changes nothing."""
        was_drag = self.dragging
        self._down = self._last = None
        self.dragging = False
        if was_drag:
            return self.state.selected_component
        cid = pick(px, py, self.camera, registry, self.viewport)
        if cid is None:
            return self.state.selected_component
        self.state.select(cid, registry)
        logger.debug("Click at (%s, %s) selected %s", px, py, cid)
        return cid

    def wheel(self, delta: float) -> None:
        self.camera.zoom(delta)
