from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from racking.animation import tick
from racking.camera import OrbitCamera
from racking.materials import SELECTED_COLOR, Material
from racking.models import MaintenanceType, Rack
from racking.picking import resolve_hit
from racking.records import MaintenanceLog
from racking.scene import SceneBuilder, SceneState
from streamlit_app.lib.floorplan_3d import create_rack_figure, selected_key, shade, to_plotly

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def builder():
    log = MaintenanceLog()
    log.add("rack-1-upright-1-front", MaintenanceType.REPAIR, "Bent", now=NOW)
    builder = SceneBuilder()
    builder.rebuild(SceneState(
        racks=(Rack(id="rack-1", name="Rack 1"),),
        records=log.as_mapping(),
        selected_component="rack-1-beam-0-1-front",
        now=NOW,
    ))
    return builder


def traces(fig, kind):
    return [t for t in fig.data if t.type == kind]


def test_figure_traces(builder):
    registry = builder.registry
    fig = create_rack_figure(registry, OrbitCamera(), builder.locator(), tick(0.0))

    meshes = traces(fig, "mesh3d")
    assert meshes
    assert len({m.color for m in meshes}) == len(meshes)

    handles, indicators = [t for t in traces(fig, "scatter3d") if t.mode == "markers"]
    assert len(handles.customdata) == len(registry)
    assert all(registry.by_key(k).addressable for k in handles.customdata)

    (indicator_key,) = indicators.customdata
    assert resolve_hit(registry.by_key(indicator_key)) == "rack-1-upright-1-front"

    assert len(traces(fig, "cone")) == 1
    assert fig.layout.scene.aspectmode == "data"
    assert fig.layout.scene.camera.up.z == 1


def test_figure_without_selection_has_no_locator():
    builder = SceneBuilder()
    builder.rebuild(SceneState(racks=(Rack(id="rack-1", name="Rack 1"),)))
    fig = create_rack_figure(builder.registry, OrbitCamera(), builder.locator())
    assert not traces(fig, "cone")


def test_empty_registry_still_renders():
    fig = create_rack_figure(SceneBuilder().registry, OrbitCamera())
    assert not fig.data


def test_shade():
    assert shade(Material(color="#4a90d9")) == "#4a90d9"
    assert shade(Material(color="#000000", emissive="#ffffff", emissive_intensity=0.5)) == "#7f7f7f"
    glowing = Material(color="#000000", emissive=SELECTED_COLOR, emissive_intensity=0.5)
    assert shade(glowing, selected_intensity=0.0) == "#000000"


def test_to_plotly_is_z_up():
    x, y, z = to_plotly([[1.0, 2.0, 3.0]])
    assert (x[0], y[0], z[0]) == (1.0, -3.0, 2.0)


def test_selected_key():
    assert selected_key(None) is None
    assert selected_key({"selection": {"points": []}}) is None
    assert selected_key({"selection": {"points": [{"customdata": "rack-1-beam-0-1-front#40"}]}}) == "rack-1-beam-0-1-front#40"
    assert selected_key({"selection": {"points": [{"customdata": ["k#1"]}]}}) == "k#1"
    event = SimpleNamespace(selection=SimpleNamespace(points=[{"customdata": "k#2"}]))
    assert selected_key(event) == "k#2"
