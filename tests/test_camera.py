import math

import numpy as np
import pytest

from racking.camera import (
    COMPONENT_FOCUS_DISTANCE,
    DISTANCE_MAX,
    DISTANCE_MIN,
    PHI_MAX,
    PHI_MIN,
    CameraRig,
    OrbitCamera,
)
from racking.layout import rack_center
from racking.models import Position, Rack
from racking.scene import SceneBuilder, SceneState


def test_position_from_spherical_coordinates():
    cam = OrbitCamera(theta=0.0, phi=math.pi / 4, distance=10.0, target=(1.0, 2.0, 3.0))
    s = 10 * math.sqrt(2) / 2
    assert np.allclose(cam.position, [1.0, 2.0 + s, 3.0 + s])

    cam = OrbitCamera(theta=math.pi / 2, phi=math.pi / 4, distance=10.0, target=(0.0, 0.0, 0.0))
    assert np.allclose(cam.position, [s, s, 0.0])


def test_construction_clamps():
    cam = OrbitCamera(phi=3.0, distance=1.0)
    assert cam.phi == PHI_MAX
    assert cam.distance == DISTANCE_MIN


def test_orbit_and_zoom_clamp():
    cam = OrbitCamera(theta=0.0, phi=0.5, distance=10.0)
    cam.orbit(50, 0)
    assert cam.theta == pytest.approx(-0.5)
    cam.orbit(0, 10_000)
    assert cam.phi == PHI_MAX
    cam.orbit(0, -10_000)
    assert cam.phi == PHI_MIN
    cam.zoom(1e6)
    assert cam.distance == DISTANCE_MAX
    cam.zoom(-1e6)
    assert cam.distance == DISTANCE_MIN


def test_presets():
    cam = OrbitCamera()
    cam.apply_preset("top")
    assert (cam.theta, cam.phi, cam.distance) == (0.0, math.pi / 2 - 0.1, 20.0)
    cam.apply_preset("side")
    assert cam.theta == pytest.approx(math.pi / 2)
    with pytest.raises(KeyError):
        cam.apply_preset("under")


def test_view_matrix_puts_target_in_front():
    cam = OrbitCamera(theta=0.7, phi=0.4, distance=12.0, target=(3.0, 1.0, -2.0))
    p = cam.view_matrix() @ np.append(cam.target, 1.0)
    assert np.allclose(p[:3], [0.0, 0.0, -12.0])


def test_projection_centers_target():
    cam = OrbitCamera(theta=1.1, phi=0.3, distance=20.0, target=(5.0, 2.0, 5.0))
    clip = cam.projection_matrix(16 / 9) @ cam.view_matrix() @ np.append(cam.target, 1.0)
    ndc = clip[:3] / clip[3]
    assert np.allclose(ndc[:2], [0.0, 0.0])
    assert -1.0 < ndc[2] < 1.0


def test_plotly_camera_maps_y_up_to_z_up():
    cam = OrbitCamera(theta=0.0, phi=math.pi / 4, distance=10.0, target=(0.0, 0.0, 0.0))
    pc = cam.plotly_camera()
    assert pc["up"] == {"x": 0.0, "y": 0.0, "z": 1.0}
    assert pc["center"] == {"x": 0.0, "y": 0.0, "z": 0.0}
    # camera sits in front (+z world) and above
    assert pc["eye"]["y"] < 0
    assert pc["eye"]["z"] > 0
    assert pc["eye"]["x"] == pytest.approx(0.0)


def test_plotly_camera_with_bounds():
    cam = OrbitCamera(theta=0.0, phi=math.pi / 4, distance=10.0, target=(5.0, 0.0, 0.0))
    pc = cam.plotly_camera(bounds=((0.0, 0.0, -1.0), (10.0, 4.0, 1.0)))
    assert pc["center"]["x"] == pytest.approx(0.0)
    assert pc["center"]["z"] == pytest.approx(-0.4)


def test_rig_retargets_only_when_rack_changes():
    rig = CameraRig(OrbitCamera())
    a = Rack(id="rack-1", name="Rack 1")
    b = Rack(id="rack-2", name="Rack 2", position=Position(x=20.0, z=4.0))

    assert rig.on_rack_selected(a)
    assert np.allclose(rig.camera.target, rack_center(a))

    rig.camera.look_at((0.0, 0.0, 0.0))
    assert not rig.on_rack_selected(a)
    assert np.allclose(rig.camera.target, [0.0, 0.0, 0.0])

    assert rig.on_rack_selected(b)
    assert np.allclose(rig.camera.target, rack_center(b))
    assert not rig.on_rack_selected(None)


def test_focus_component():
    registry = SceneBuilder().rebuild(SceneState(racks=(Rack(id="rack-1", name="Rack 1"),)))
    rig = CameraRig(OrbitCamera(distance=30.0))

    assert rig.focus_component("rack-1-beam-1-2-back", registry)
    assert np.allclose(rig.camera.target, registry.get("rack-1-beam-1-2-back").position)
    assert rig.camera.distance == COMPONENT_FOCUS_DISTANCE

    before = rig.camera.target.copy()
    assert not rig.focus_component("rack-1-beam-7-2-back", registry)
    assert np.allclose(rig.camera.target, before)


def test_to_dict():
    cam = OrbitCamera(theta=0.5, phi=0.5, distance=10.0, target=(1.0, 2.0, 3.0))
    assert cam.to_dict() == {"theta": 0.5, "phi": 0.5, "distance": 10.0, "target": [1.0, 2.0, 3.0]}
