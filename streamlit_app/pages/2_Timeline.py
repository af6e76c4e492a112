import streamlit as st
import sys
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.analytics import records_frame
from racking.identity import parse_component_id, rack_inspection_id
from racking.models import MAINTENANCE_TYPE_COLORS, STATUS_COLORS, MaintenanceType, RecordStatus
from streamlit_app.lib.config import settings, configure_logging
from streamlit_app.lib.utils import badge, format_timestamp, pretty
from streamlit_app.lib.workspace import get_workspace

configure_logging(settings.log_level)

st.set_page_config(page_title="Maintenance Timeline", layout="wide")

ws = get_workspace(st)
registry = ws.refresh()

st.title("🕒 Maintenance Timeline")

names = {r.id: r.name for r in ws.racks}


def label_for(component_id: str) -> str:
    if component_id in registry:
        return registry.label(component_id)
    for rack_id, name in names.items():
        if component_id == rack_inspection_id(rack_id):
            return f"{name} - Rack inspection"
    ref = parse_component_id(component_id)
    # stale ids (bay/level removed) still get a readable label
    return f"{component_id} (no longer in layout)" if ref is not None else component_id


# Filters
f1, f2, f3 = st.columns(3)
rack_filter = f1.selectbox("Rack", [None] + list(names), format_func=lambda r: "All racks" if r is None else names[r])
type_filter = f2.multiselect("Type", list(MaintenanceType), format_func=lambda t: pretty(t.value))
status_filter = f3.multiselect("Status", list(RecordStatus), format_func=lambda s: pretty(s.value))

records = ws.log.all_sorted()
if rack_filter:
    records = [r for r, _ in ws.log.for_rack(rack_filter)]
if type_filter:
    records = [r for r in records if r.type in type_filter]
if status_filter:
    records = [r for r in records if r.status in status_filter]

st.caption(f"{len(records)} of {len(ws.log)} records, newest first")

if not records:
    st.info("No maintenance records match the filters.")

for record in records:
    with st.container(border=True):
        left, right = st.columns([1, 4])
        with left:
            st.markdown(f"**{format_timestamp(record.timestamp)}**")
            badge(pretty(record.type.value), MAINTENANCE_TYPE_COLORS[record.type])
            badge(pretty(record.status.value), STATUS_COLORS[record.status])
        with right:
            st.markdown(f"**{label_for(record.component_id)}**")
            st.markdown(record.description)
            meta = []
            if record.technician:
                meta.append(f"👷 {record.technician}")
            if record.images:
                meta.append(f"📷 {len(record.images)} photo(s)")
            if meta:
                st.caption(" · ".join(meta))

with st.expander("Table view"):
    df = records_frame(ws.log.as_mapping())
    if not df.empty:
        df = df.sort_values("timestamp", ascending=False)
        df["component"] = df["component_id"].map(label_for)
    st.dataframe(df, use_container_width=True, hide_index=True)
