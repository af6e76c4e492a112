import streamlit as st
import sys
import time
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.animation import tick
from racking.identity import belongs_to_rack
from racking.materials import HEATMAP_STALE, HEATMAP_TIERS
from racking.models import (
    HEALTH_COLORS,
    MAINTENANCE_TYPE_COLORS,
    STATUS_COLORS,
    HealthStatus,
    MaintenanceType,
    RecordStatus,
    ViewMode,
)
from racking.picking import resolve_hit
from racking.records import RecordError
from streamlit_app.lib import data_access as da
from streamlit_app.lib.config import settings, configure_logging
from streamlit_app.lib.floorplan_3d import create_rack_figure, selected_key
from streamlit_app.lib.sidebar import camera_controls, config_editor, rack_picker, view_mode_picker
from streamlit_app.lib.utils import badge, format_timestamp, pretty
from streamlit_app.lib.workspace import get_workspace

configure_logging(settings.log_level)

st.set_page_config(page_title="3D Configurator", layout="wide")

ws = get_workspace(st)
if "scene_t0" not in st.session_state:
    st.session_state["scene_t0"] = time.monotonic()

# Sidebar
rack_picker(ws)
view_mode_picker(ws)
config_editor(ws)
camera_controls(ws)

registry = ws.refresh()
effects = tick(time.monotonic() - st.session_state["scene_t0"])
selected = ws.interaction.selected_component

st.title(f"🧱 {ws.racks.selected.name}")

col_scene, col_panel = st.columns([3, 2])

with col_scene:
    fig = create_rack_figure(registry, ws.rig.camera, ws.builder.locator(), effects)
    event = st.plotly_chart(
        fig,
        use_container_width=True,
        key="rack-scene",
        on_select="rerun",
        selection_mode="points",
    )

    # The selection event sticks around between reruns; only act on new clicks.
    key = selected_key(event)
    if key != st.session_state.get("last_pick"):
        st.session_state["last_pick"] = key
        if key is not None:
            cid = resolve_hit(registry.by_key(key))
            if cid is not None and cid != selected:
                ws.select_component(cid)
                st.rerun()

    st.caption("💡 Click a component marker to select it · Rotate (drag) · Zoom (scroll)")

    if ws.view_mode == ViewMode.HEALTH:
        legend = st.columns(len(HEALTH_COLORS))
        for col, (status, color) in zip(legend, HEALTH_COLORS.items()):
            with col:
                badge(pretty(status.value), color)
    elif ws.view_mode == ViewMode.HEATMAP:
        labels = [f"≤ {limit} days" for limit, _ in HEATMAP_TIERS] + [f"> {HEATMAP_TIERS[-1][0]} days"]
        colors = [color for _, color in HEATMAP_TIERS] + [HEATMAP_STALE]
        legend = st.columns(len(labels))
        for col, label, color in zip(legend, labels, colors):
            with col:
                badge(label, color)

with col_panel:
    rack = ws.racks.selected
    ids = [cid for cid in registry.component_ids() if belongs_to_rack(cid, rack.id)]
    options = [None] + ids
    current = selected if selected in ids else None
    choice = st.selectbox(
        "Component",
        options,
        index=options.index(current),
        format_func=lambda cid: "(Rack overview)" if cid is None else registry.label(cid),
    )
    if choice != current:
        ws.select_component(choice)
        st.rerun()

    if current is None:
        # Rack overview with rack-level inspections
        summary = ws.health.rack_summary(rack.id)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Rated", summary["total"])
        c2.metric("Good", summary["good"])
        c3.metric("Warning", summary["warning"])
        c4.metric("Critical", summary["critical"])

        with st.form("rack-inspection", clear_on_submit=True):
            st.markdown("**📋 Rack inspection**")
            technician = st.text_input("Technician")
            description = st.text_area("Findings")
            if st.form_submit_button("Log inspection"):
                try:
                    ws.log.add_rack_inspection(rack.id, description, technician=technician)
                    ws.save()
                    st.success("Inspection logged")
                    st.rerun()
                except RecordError as e:
                    st.error(str(e))

        st.markdown("**Recent activity**")
        entries = ws.log.for_rack(rack.id)
        if not entries:
            st.info("No maintenance records for this rack yet.")
        for record, is_rack_level in entries[:20]:
            where = "Rack inspection" if is_rack_level else registry.label(record.component_id)
            st.markdown(
                f"- **{pretty(record.type.value)}** · {where} · {format_timestamp(record.timestamp)} "
                f"· _{pretty(record.status.value)}_"
            )
    else:
        st.subheader(registry.label(current))
        if st.button("🎯 Focus camera on component"):
            if ws.rig.focus_component(current, registry):
                st.session_state["_sync_camera"] = True
                st.rerun()

        # Health rating
        statuses = [None] + list(HealthStatus)
        rating = ws.health.get(current)
        new_rating = st.radio(
            "Health",
            statuses,
            index=statuses.index(rating),
            format_func=lambda s: "Not rated" if s is None else pretty(s.value),
            horizontal=True,
            key=f"health-{current}",
        )
        if new_rating != rating:
            if new_rating is None:
                ws.health.clear(current)
                ws.save()
            else:
                ws.set_health(current, new_rating)
            st.rerun()

        # Records
        st.markdown("**🛠️ Maintenance history**")
        records = ws.log.for_component(current)
        if not records:
            st.info("No records for this component.")
        for record in records:
            with st.container(border=True):
                top, action = st.columns([4, 1])
                with top:
                    badge(pretty(record.type.value), MAINTENANCE_TYPE_COLORS[record.type])
                    badge(pretty(record.status.value), STATUS_COLORS[record.status])
                    st.markdown(record.description)
                    st.caption(
                        f"{format_timestamp(record.timestamp)}"
                        + (f" · {record.technician}" if record.technician else "")
                    )
                with action:
                    if st.button("🗑️", key=f"del-{record.id}", help="Delete record"):
                        ws.log.remove(current, record.id)
                        ws.save()
                        st.rerun()
                images = [da.upload_path(p, ws.data_dir) for p in record.images]
                images = [str(p) for p in images if p.exists()]
                if images:
                    st.image(images, width=120)

        with st.form("add-record", clear_on_submit=True):
            st.markdown("**➕ Add record**")
            c1, c2 = st.columns(2)
            rtype = c1.selectbox("Type", list(MaintenanceType), format_func=lambda t: pretty(t.value))
            status = c2.selectbox("Status", list(RecordStatus), format_func=lambda s: pretty(s.value))
            technician = st.text_input("Technician")
            description = st.text_area("Description")
            uploads = st.file_uploader(
                "Photos", type=["jpg", "jpeg", "png", "webp"], accept_multiple_files=True
            )
            if st.form_submit_button("Save record"):
                try:
                    paths = [
                        da.save_upload(f.name, f.type, f.getvalue(), ws.data_dir)
                        for f in uploads or []
                    ]
                    ws.add_record(current, rtype, description, technician, status, paths)
                    st.success("Record saved")
                    st.rerun()
                except (RecordError, da.UploadError) as e:
                    st.error(str(e))
