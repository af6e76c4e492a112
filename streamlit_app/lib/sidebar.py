"""
Sidebar controls for the configurator: rack picker, configuration editor,
view mode and camera.
"""

import math

import streamlit as st

from racking.camera import DISTANCE_MAX, DISTANCE_MIN, PHI_MAX, PHI_MIN, PRESETS, OrbitCamera
from racking.models import BAYS_RANGE, DIMENSION_RANGE, LEVELS_RANGE, ViewMode

from .workspace import Workspace

VIEW_MODE_LABELS = {
    ViewMode.NORMAL: "🔧 Normal",
    ViewMode.HEALTH: "❤️ Health",
    ViewMode.HEATMAP: "🔥 Inspection heatmap",
}

COLOR_FIELDS = (
    ("frame_color", "Frame"),
    ("beam_color", "Beams"),
    ("crossbar_color", "Crossbars"),
    ("wire_deck_color", "Wire decks"),
    ("pallet_color", "Pallets"),
)


def rack_picker(ws: Workspace) -> None:
    racks = ws.racks.racks
    ids = [r.id for r in racks]
    names = {r.id: r.name for r in racks}
    choice = st.sidebar.selectbox(
        "Rack",
        ids,
        index=ids.index(ws.racks.selected_id),
        format_func=lambda rid: names[rid],
    )
    if choice != ws.racks.selected_id:
        ws.select_rack(choice)
        ws.select_component(None)


def config_editor(ws: Workspace) -> bool:
    """Edit the selected rack's configuration. Returns True when it changed."""
    rack = ws.racks.selected
    cfg = rack.config
    sb = st.sidebar
    prefix = f"{rack.id}-{ws.revision}"

    sb.subheader("Structure")
    values = {
        "bays": sb.slider("Bays", *BAYS_RANGE, value=cfg.bays, key=f"{prefix}-bays"),
        "levels": sb.slider("Levels", *LEVELS_RANGE, value=cfg.levels, key=f"{prefix}-levels"),
        "bay_width": sb.number_input("Bay width (m)", *DIMENSION_RANGE, value=cfg.bay_width, step=0.1,
                                     key=f"{prefix}-bay_width"),
        "bay_depth": sb.number_input("Bay depth (m)", *DIMENSION_RANGE, value=cfg.bay_depth, step=0.1,
                                     key=f"{prefix}-bay_depth"),
        "level_height": sb.number_input("Level height (m)", *DIMENSION_RANGE, value=cfg.level_height, step=0.1,
                                        key=f"{prefix}-level_height"),
    }

    with sb.expander("Colors"):
        for name, label in COLOR_FIELDS:
            values[name] = st.color_picker(label, getattr(cfg, name), key=f"{prefix}-{name}")

    sb.subheader("Accessories")
    values["show_wire_decks"] = sb.checkbox("Wire decks", cfg.show_wire_decks, key=f"{prefix}-decks")
    values["show_pallets"] = sb.checkbox("Pallets", cfg.show_pallets, key=f"{prefix}-pallets")
    if values["show_pallets"]:
        values["pallet_fill"] = sb.slider("Pallet fill (%)", 0, 100, cfg.pallet_fill, key=f"{prefix}-fill")

    new_cfg = cfg.edited(**values)
    if new_cfg == cfg:
        return False
    ws.racks.update_config(rack.id, **new_cfg.model_dump())
    ws.save()
    return True


def view_mode_picker(ws: Workspace) -> None:
    modes = list(ViewMode)
    mode = st.sidebar.radio(
        "View mode",
        modes,
        index=modes.index(ws.view_mode),
        format_func=lambda m: VIEW_MODE_LABELS[m],
    )
    ws.set_view_mode(mode)


def sync_camera_widgets(cam: OrbitCamera) -> None:
    """Push camera values into the slider state. Call before the sliders render."""
    st.session_state["cam-theta"] = int(round(math.degrees(math.remainder(cam.theta, 2 * math.pi))))
    st.session_state["cam-phi"] = int(round(math.degrees(cam.phi)))
    st.session_state["cam-distance"] = float(cam.distance)


def camera_controls(ws: Workspace) -> None:
    cam = ws.rig.camera
    sb = st.sidebar
    sb.subheader("Camera")
    if "cam-theta" not in st.session_state or st.session_state.pop("_sync_camera", False):
        sync_camera_widgets(cam)

    cols = sb.columns(len(PRESETS))
    for col, name in zip(cols, PRESETS):
        if col.button(name.title(), key=f"preset-{name}", use_container_width=True):
            cam.apply_preset(name)
            sync_camera_widgets(cam)

    cam.theta = math.radians(sb.slider("Orbit (°)", -180, 180, key="cam-theta"))
    cam.phi = math.radians(sb.slider(
        "Elevation (°)", math.ceil(math.degrees(PHI_MIN)), math.floor(math.degrees(PHI_MAX)), key="cam-phi",
    ))
    cam.distance = sb.slider("Distance (m)", DISTANCE_MIN, DISTANCE_MAX, step=0.5, key="cam-distance")
    if sb.button("🎯 Focus selected rack", use_container_width=True):
        ws.rig.focus_rack(ws.racks.selected)
