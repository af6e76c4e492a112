import streamlit as st
import sys
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.snapshot import SnapshotError, export_snapshot, import_snapshot, snapshot_filename
from streamlit_app.lib.config import settings, configure_logging
from streamlit_app.lib.workspace import get_workspace

configure_logging(settings.log_level)

st.set_page_config(page_title="Import / Export", layout="wide")

ws = get_workspace(st)

st.title("💾 Import / Export")

col_export, col_import = st.columns(2)

with col_export:
    st.subheader("Export")
    st.write(
        f"Downloads all **{len(ws.racks)}** racks, **{len(ws.log)}** maintenance records "
        f"and **{len(ws.health)}** health ratings as one JSON file."
    )
    st.download_button(
        "⬇️ Download snapshot",
        data=export_snapshot(ws.racks, ws.log, ws.health),
        file_name=snapshot_filename(),
        mime="application/json",
        use_container_width=True,
    )

    with st.expander("Component layout (CSV)"):
        ws.refresh()
        table = ws.builder.layout_table()
        st.dataframe(table, use_container_width=True, hide_index=True, height=260)
        st.download_button(
            "⬇️ Download layout CSV",
            data=table.to_csv(index=False).encode(),
            file_name="rack-layout.csv",
            mime="text/csv",
        )

with col_import:
    st.subheader("Import")
    st.warning("Importing replaces all racks. Records and health ratings are replaced when the file contains them.")
    notice = st.session_state.pop("import_notice", None)
    if notice:
        st.success(notice)
    upload = st.file_uploader("Snapshot file", type=["json"])
    if upload is not None and st.button("⬆️ Import", type="primary", use_container_width=True):
        try:
            snapshot = import_snapshot(upload.getvalue())
        except SnapshotError as e:
            st.error(str(e))
        else:
            ws.replace(snapshot)
            # Export counts and downloads above were rendered from the old workspace
            st.session_state["import_notice"] = f"Imported {len(snapshot.racks)} rack(s)"
            st.rerun()
