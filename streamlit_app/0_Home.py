import streamlit as st
import math
import sys
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.layout import rack_dimensions
from streamlit_app.lib.config import settings, configure_logging
from streamlit_app.lib.workspace import get_workspace

configure_logging(settings.log_level)

st.set_page_config(page_title="Rack Maintenance Console", layout="wide")

ws = get_workspace(st)

st.title("🏗️ Rack Maintenance Console")
st.caption("Configure pallet racks in 3D and track inspections, repairs and health per component.")

col_nav1, col_nav2 = st.columns([3, 1])
with col_nav1:
    st.markdown(f"**{len(ws.racks)}** racks · **{len(ws.log)}** maintenance records · data in `{settings.data_dir}`")
with col_nav2:
    if st.button("➕ Add rack", use_container_width=True):
        ws.racks.add_rack()
        ws.save()
        st.rerun()

st.markdown("---")

for rack in ws.racks:
    width, depth, height = rack_dimensions(rack)
    rack_records = ws.log.for_rack(rack.id)
    summary = ws.health.rack_summary(rack.id)
    is_selected = rack.id == ws.racks.selected_id

    with st.container(border=True):
        head, stats, actions = st.columns([2, 3, 2])
        with head:
            st.subheader(("✅ " if is_selected else "") + rack.name)
            st.caption(
                f"`{rack.id}` · {rack.config.bays} bays × {rack.config.levels} levels · "
                f"{width:.1f} × {depth:.1f} × {height:.1f} m"
            )
        with stats:
            c1, c2, c3, c4 = st.columns(4)
            c1.metric("Records", len(rack_records))
            c2.metric("Good", summary["good"])
            c3.metric("Warning", summary["warning"])
            c4.metric("Critical", summary["critical"])
        with actions:
            if st.button("🔍 Open in configurator", key=f"open-{rack.id}", use_container_width=True):
                ws.select_rack(rack.id)
                st.switch_page("pages/1_Configurator.py")
            a1, a2 = st.columns(2)
            if a1.button("Duplicate", key=f"dup-{rack.id}", use_container_width=True):
                ws.racks.duplicate_rack(rack.id)
                ws.save()
                st.rerun()
            if a2.button("Delete", key=f"del-{rack.id}", use_container_width=True, disabled=len(ws.racks) <= 1):
                ws.racks.delete_rack(rack.id)
                ws.save()
                st.rerun()

        with st.expander("Placement"):
            p1, p2, p3, p4 = st.columns(4)
            name = p1.text_input("Name", rack.name, key=f"name-{rack.id}-{ws.revision}")
            x = p2.number_input("X (m)", value=float(rack.position.x), step=0.5, key=f"x-{rack.id}-{ws.revision}")
            z = p3.number_input("Z (m)", value=float(rack.position.z), step=0.5, key=f"z-{rack.id}-{ws.revision}")
            rotation = p4.slider(
                "Rotation (°)", 0, 359, int(round(math.degrees(rack.rotation))) % 360,
                key=f"rot-{rack.id}-{ws.revision}",
            )
            changed = False
            if name.strip() and name.strip() != rack.name:
                ws.racks.rename_rack(rack.id, name)
                changed = True
            if (x, z) != (rack.position.x, rack.position.z):
                ws.racks.move_rack(rack.id, x, z)
                changed = True
            if rotation != int(round(math.degrees(rack.rotation))) % 360:
                ws.racks.rotate_rack(rack.id, math.radians(rotation))
                changed = True
            if changed:
                ws.save()

st.markdown("---")
st.subheader("📌 Pages")
st.page_link("pages/1_Configurator.py", label="🧱 3D Configurator")
st.page_link("pages/2_Timeline.py", label="🕒 Maintenance Timeline")
st.page_link("pages/3_Analytics.py", label="📊 Analytics")
st.page_link("pages/4_Import_Export.py", label="💾 Import / Export")
