import math

import numpy as np
import pytest

from racking.camera import OrbitCamera
from racking.identity import Side
from racking.layout import BeamMeta, Role, Shape, UprightMeta, compose
from racking.materials import Material
from racking.models import Rack
from racking.picking import (
    InteractionState,
    PointerGesture,
    Ray,
    hits,
    intersect,
    pick,
    ray_from_pointer,
    resolve_hit,
)
from racking.scene import (
    GeometryHandle,
    MaterialHandle,
    RackSubtree,
    Registry,
    RenderObject,
    SceneBuilder,
    SceneState,
)

VIEWPORT = (800, 600)
CENTER = (400, 300)


def box(key, center=(0.0, 0.0, 0.0), size=(1.0, 1.0, 1.0), rotation=(0.0, 0.0, 0.0), meta=None, **kw):
    kw.setdefault("addressable", meta is not None and not kw.get("decoration") and "parent_id" not in kw)
    role = kw.pop("role", Role.STRUCTURE)
    return RenderObject(
        key=key,
        rack_id="rack-1",
        role=role,
        geometry=GeometryHandle(shape=Shape.BOX, size=size),
        material=MaterialHandle(material=Material(color="#ffffff")),
        matrix=compose(center, rotation),
        meta=meta,
        **kw,
    )


def registry_of(*objects):
    rack = Rack(id="rack-1", name="Rack 1")
    return Registry([RackSubtree(rack=rack, transform=np.eye(4), objects=list(objects), fingerprint=())])


@pytest.fixture
def camera():
    return OrbitCamera(theta=0.0, phi=0.1, distance=10.0, target=(0.0, 0.0, 0.0))


@pytest.fixture
def toward_eye(camera):
    v = camera.position - camera.target
    return v / np.linalg.norm(v)


UPRIGHT = UprightMeta("rack-1", 0, Side.FRONT)
BEAM = BeamMeta("rack-1", 0, 1, Side.FRONT)


def down_z(x=0.0):
    return Ray(origin=np.array([x, 0.0, 10.0]), direction=np.array([0.0, 0.0, -1.0]))


def test_intersect_unit_box():
    assert intersect(down_z(), box("a")) == pytest.approx(9.5)


def test_intersect_parallel_miss():
    assert intersect(down_z(x=2.0), box("a")) is None


def test_intersect_from_inside_is_zero():
    ray = Ray(origin=np.zeros(3), direction=np.array([1.0, 0.0, 0.0]))
    assert intersect(ray, box("a")) == 0.0


def test_intersect_behind_origin_misses():
    ray = Ray(origin=np.array([0.0, 0.0, 10.0]), direction=np.array([0.0, 0.0, 1.0]))
    assert intersect(ray, box("a")) is None


def test_intersect_rotated_box():
    long_x = box("a", size=(2.0, 0.2, 0.2), rotation=(0.0, math.pi / 2, 0.0))
    assert intersect(down_z(), long_x) == pytest.approx(9.0)
    assert intersect(down_z(x=0.5), long_x) is None


def test_hits_are_sorted_by_distance():
    far, near = box("far"), box("near", center=(0.0, 0.0, 3.0))
    assert [o.key for _, o in hits(down_z(), [far, near])] == ["near", "far"]


def test_center_pixel_ray_points_at_target(camera):
    ray = ray_from_pointer(*CENTER, *VIEWPORT, camera)
    expected = camera.target - camera.position
    assert np.allclose(ray.direction, expected / np.linalg.norm(expected), atol=1e-6)
    assert np.linalg.norm(ray.origin - camera.position) == pytest.approx(camera.near, rel=1e-3)


def test_nearest_hit_wins(camera, toward_eye):
    registry = registry_of(box("u", meta=UPRIGHT), box("b", center=tuple(toward_eye * 3), meta=BEAM))
    assert pick(*CENTER, camera, registry, VIEWPORT) == BEAM.ref.component_id


def test_decorations_are_skipped(camera, toward_eye):
    registry = registry_of(
        box("u", meta=UPRIGHT),
        box("load", center=tuple(toward_eye * 3), meta=BEAM, decoration=True),
    )
    assert pick(*CENTER, camera, registry, VIEWPORT) == UPRIGHT.ref.component_id


def test_indicator_resolves_to_parent(camera, toward_eye):
    beam_id = BEAM.ref.component_id
    indicator = box(
        "ind", center=tuple(toward_eye * 3), size=(0.2, 0.2, 0.2), role=Role.INDICATOR, parent_id=beam_id
    )
    registry = registry_of(box("u", meta=UPRIGHT), indicator)
    assert resolve_hit(indicator) == beam_id
    assert pick(*CENTER, camera, registry, VIEWPORT) == beam_id


def test_empty_space_picks_nothing(camera):
    registry = registry_of(box("u", center=(20.0, 0.0, 0.0), meta=UPRIGHT))
    assert pick(*CENTER, camera, registry, VIEWPORT) is None
    assert pick(*CENTER, camera, registry, (0, 0)) is None


def test_pick_on_a_built_rack():
    builder = SceneBuilder()
    registry = builder.rebuild(SceneState(racks=(Rack(id="rack-1", name="Rack 1"),)))
    target = registry.get("rack-1-upright-0-front").position
    camera = OrbitCamera(theta=0.0, phi=0.1, distance=10.0, target=target)
    assert pick(*CENTER, camera, registry, VIEWPORT) == "rack-1-upright-0-front"


def test_select_component_selects_its_rack():
    builder = SceneBuilder()
    registry = builder.rebuild(SceneState(racks=(
        Rack(id="rack-1", name="Rack 1"),
        Rack(id="rack-2", name="Rack 2"),
    )))
    state = InteractionState(selected_rack_id="rack-1")
    state.select("rack-2-upright-0-front", registry)
    assert state.selected_rack_id == "rack-2"
    state.select(None, registry)
    assert state.selected_component is None
    assert state.selected_rack_id == "rack-2"


# Gestures

def test_small_movement_is_still_a_click(camera):
    state = InteractionState()
    registry = registry_of(box("u", meta=UPRIGHT))
    gesture = PointerGesture(state, camera, VIEWPORT)
    gesture.down(398, 299)
    gesture.move(400, 300, registry)
    assert not gesture.dragging
    assert gesture.up(*CENTER, registry) == UPRIGHT.ref.component_id
    assert state.selected_component == UPRIGHT.ref.component_id


def test_drag_orbits_and_suppresses_click(camera):
    state = InteractionState(selected_component="rack-1-beam-0-1-back")
    registry = registry_of(box("u", meta=UPRIGHT))
    gesture = PointerGesture(state, camera, VIEWPORT)
    gesture.down(*CENTER)
    gesture.move(410, 300, registry)
    assert gesture.dragging
    assert camera.theta == pytest.approx(-0.1)
    gesture.move(415, 300, registry)
    assert camera.theta == pytest.approx(-0.15)

    assert gesture.up(415, 300, registry) == "rack-1-beam-0-1-back"
    assert state.selected_component == "rack-1-beam-0-1-back"
    assert not gesture.pressed


def test_hover_without_button(camera):
    state = InteractionState()
    registry = registry_of(box("u", meta=UPRIGHT))
    gesture = PointerGesture(state, camera, VIEWPORT)
    assert gesture.move(*CENTER, registry) == UPRIGHT.ref.component_id
    assert state.hovered_component == UPRIGHT.ref.component_id
    assert state.selected_component is None


def test_click_on_empty_space_keeps_selection(camera):
    state = InteractionState(selected_component="rack-1-upright-0-front", selected_rack_id="rack-1")
    gesture = PointerGesture(state, camera, VIEWPORT)
    gesture.down(10, 10)
    assert gesture.up(10, 10, registry_of()) == "rack-1-upright-0-front"
    assert state.selected_component == "rack-1-upright-0-front"
    assert state.selected_rack_id == "rack-1"


def test_wheel_zooms_within_limits(camera):
    gesture = PointerGesture(InteractionState(), camera, VIEWPORT)
    gesture.wheel(100)
    assert camera.distance == pytest.approx(11.0)
    gesture.wheel(-100000)
    assert camera.distance == 5.0
