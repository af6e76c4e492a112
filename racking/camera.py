"""
Orbit camera around a target point, with view presets and rack/component focus.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from racking.layout import rack_center
from racking.models import Rack

logger = logging.getLogger(__name__)

PHI_MIN = 0.1
PHI_MAX = math.pi / 2 - 0.1
DISTANCE_MIN = 5.0
DISTANCE_MAX = 50.0
ORBIT_SPEED = 0.01
ZOOM_SPEED = 0.01
COMPONENT_FOCUS_DISTANCE = 8.0

# name -> (theta, phi, distance)
PRESETS: Dict[str, Tuple[float, float, float]] = {
    "front": (0.0, math.pi / 6, 15.0),
    "side": (math.pi / 2, math.pi / 6, 15.0),
    "top": (0.0, math.pi / 2 - 0.1, 20.0),
    "iso": (math.pi / 4, math.pi / 4, 15.0),
    "back": (math.pi, math.pi / 6, 15.0),
}


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass
class OrbitCamera:
    theta: float = math.pi / 4
    phi: float = math.pi / 4
    distance: float = 25.0
    target: np.ndarray = field(default_factory=lambda: np.array([0.0, 3.0, 0.0]))
    fov: float = 60.0
    near: float = 0.1
    far: float = 1000.0

    def __post_init__(self):
        self.target = np.asarray(self.target, dtype=float)
        self.phi = _clamp(self.phi, PHI_MIN, PHI_MAX)
        self.distance = _clamp(self.distance, DISTANCE_MIN, DISTANCE_MAX)

    @property
    def position(self) -> np.ndarray:
        cp = math.cos(self.phi)
        offset = np.array([
            math.sin(self.theta) * cp,
            math.sin(self.phi),
            math.cos(self.theta) * cp,
        ])
        return self.target + self.distance * offset

    def orbit(self, dx: float, dy: float) -> None:
        """Apply a pointer drag of (dx, dy) pixels."""
        self.theta -= dx * ORBIT_SPEED
        self.phi = _clamp(self.phi + dy * ORBIT_SPEED, PHI_MIN, PHI_MAX)

    def zoom(self, delta: float) -> None:
        """Apply a wheel delta; positive moves away."""
        self.distance = _clamp(self.distance + delta * ZOOM_SPEED, DISTANCE_MIN, DISTANCE_MAX)

    def apply_preset(self, name: str) -> None:
        """Set theta, phi and distance together. Unknown names raise KeyError."""
        theta, phi, distance = PRESETS[name]
        self.theta, self.phi, self.distance = theta, phi, distance

    def look_at(self, target: Sequence[float]) -> None:
        self.target = np.asarray(target, dtype=float)

    def view_matrix(self) -> np.ndarray:
        eye = self.position
        forward = self.target - eye
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, np.array([0.0, 1.0, 0.0]))
        right /= np.linalg.norm(right)
        up = np.cross(right, forward)

        m = np.eye(4)
        m[0, :3], m[1, :3], m[2, :3] = right, up, -forward
        m[:3, 3] = -m[:3, :3] @ eye
        return m

    def projection_matrix(self, aspect: float) -> np.ndarray:
        f = 1.0 / math.tan(math.radians(self.fov) / 2)
        n, fa = self.near, self.far
        m = np.zeros((4, 4))
        m[0, 0] = f / aspect
        m[1, 1] = f
        m[2, 2] = (fa + n) / (n - fa)
        m[2, 3] = 2 * fa * n / (n - fa)
        m[3, 2] = -1.0
        return m

    def plotly_camera(self, bounds: Optional[Tuple[Sequence[float], Sequence[float]]] = None) -> dict:
        """
        Camera dict for a Plotly scene using aspectmode="data".

        Plotly places the eye in normalized scene units around the center of
        the data box, z up. `bounds` is the world (min, max) of the plotted
        data; without it the target is treated as the box center.

        Returns:
            {"eye", "center", "up"} ready for fig.update_layout(scene_camera=...)
        """
        if bounds is None:
            mid = self.target
            scale = 2.0 / max(self.distance, 1e-6)
        else:
            lo, hi = np.asarray(bounds[0], dtype=float), np.asarray(bounds[1], dtype=float)
            mid = (lo + hi) / 2
            scale = 2.0 / max(float(np.max(hi - lo)), 1e-6)

        def to_plotly(p: np.ndarray) -> dict:
            v = (p - mid) * scale
            return {"x": float(v[0]), "y": float(-v[2]), "z": float(v[1])}

        return {
            "eye": to_plotly(self.position),
            "center": to_plotly(self.target),
            "up": {"x": 0.0, "y": 0.0, "z": 1.0},
        }

    def to_dict(self) -> dict:
        return {
            "theta": self.theta,
            "phi": self.phi,
            "distance": self.distance,
            "target": [float(v) for v in self.target],
        }


class CameraRig:
    """Keeps the camera aimed at the selected rack or component."""

    def __init__(self, camera: Optional[OrbitCamera] = None):
        self.camera = camera or OrbitCamera()
        self._rack_id: Optional[str] = None

    def focus_rack(self, rack: Rack) -> None:
        self.camera.look_at(rack_center(rack))

    def on_rack_selected(self, rack: Optional[Rack]) -> bool:
        """Retarget only when the selected rack id changed. Returns True when it did."""
        if rack is None or rack.id == self._rack_id:
            return False
        self._rack_id = rack.id
        self.focus_rack(rack)
        logger.debug("Camera retargeted to rack %s", rack.id)
        return True

    def focus_component(self, component_id: str, registry) -> bool:
        """Move in on a registered component; ids not in the registry are ignored."""
        obj = registry.get(component_id)
        if obj is None:
            return False
        self.camera.look_at(obj.position)
        self.camera.distance = COMPONENT_FOCUS_DISTANCE
        return True
