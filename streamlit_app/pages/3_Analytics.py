import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
import sys
from pathlib import Path

# Add parent directory to path for imports
_root = Path(__file__).parent.parent.parent.resolve()
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from racking.analytics import compute
from streamlit_app.lib.config import settings, configure_logging
from streamlit_app.lib.utils import pretty
from streamlit_app.lib.workspace import get_workspace

configure_logging(settings.log_level)

st.set_page_config(page_title="Maintenance Analytics", layout="wide")

ws = get_workspace(st)
registry = ws.refresh()

st.title("📊 Maintenance Analytics")

stats = compute(
    ws.log.as_mapping(),
    ws.health.as_mapping(),
    total_components=len(registry),
    label=registry.label,
)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Total records", stats.total_records)
c2.metric("Components tracked", f"{stats.components_with_records} / {stats.total_components}")
c3.metric("Pending / in progress", stats.pending_count)
c4.metric("Health ratings", int(stats.health_counts["value"].sum()) if not stats.health_counts.empty else 0)

if stats.total_records == 0 and stats.health_counts.empty:
    st.info("No maintenance data yet. Add records from the 3D Configurator.")
    st.stop()


def pie(df, title):
    fig = go.Figure(go.Pie(
        labels=[pretty(n) for n in df["name"]],
        values=df["value"],
        marker=dict(colors=list(df["color"])),
        hole=0.4,
    ))
    fig.update_layout(title=title, height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


row1 = st.columns(3)
with row1[0]:
    if not stats.by_type.empty:
        st.plotly_chart(pie(stats.by_type, "Records by type"), use_container_width=True)
with row1[1]:
    if not stats.by_status.empty:
        st.plotly_chart(pie(stats.by_status, "Records by status"), use_container_width=True)
with row1[2]:
    if not stats.health_counts.empty:
        st.plotly_chart(pie(stats.health_counts, "Component health"), use_container_width=True)

row2 = st.columns(2)
with row2[0]:
    trend = stats.last_7_days.assign(day=stats.last_7_days["date"].map(lambda d: d.strftime("%b %d")))
    fig = px.line(trend, x="day", y="count", markers=True, title="Records in the last 7 days")
    fig.update_layout(height=340, margin=dict(l=10, r=10, t=40, b=10))
    st.plotly_chart(fig, use_container_width=True)
with row2[1]:
    if not stats.top_components.empty:
        fig = px.bar(
            stats.top_components.iloc[::-1],
            x="count",
            y="name",
            orientation="h",
            title="Most serviced components",
        )
        fig.update_layout(height=340, margin=dict(l=10, r=10, t=40, b=10), yaxis_title="")
        st.plotly_chart(fig, use_container_width=True)
