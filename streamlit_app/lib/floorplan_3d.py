"""
3D Rack Floorplan
Renders the scene registry as a Plotly figure: one Mesh3d per shaded color,
clickable handles per component, record indicators and the selection locator.
"""

import math
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import numpy as np
import plotly.graph_objects as go

from racking.animation import FrameEffects
from racking.camera import OrbitCamera
from racking.layout import rack_footprint
from racking.materials import SELECTED_COLOR, Material
from racking.scene import Locator, Registry

# Quads of a box whose corners come from layout.box_corners
# (index = 4 * x_bit + 2 * y_bit + z_bit).
BOX_FACES = [
    [0, 1, 3, 2],  # -x
    [4, 6, 7, 5],  # +x
    [0, 4, 5, 1],  # -y
    [2, 3, 7, 6],  # +y
    [0, 2, 6, 4],  # -z
    [1, 5, 7, 3],  # +z
]

DARK_BG = "rgb(15, 17, 26)"
DARK_GRID = "rgba(100, 100, 120, 0.3)"


def to_plotly(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """World (x, y up, z toward viewer) -> Plotly (x, y, z up), keeping handedness."""
    pts = np.atleast_2d(points)
    return pts[:, 0], -pts[:, 2], pts[:, 1]


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def shade(material: Material, selected_intensity: Optional[float] = None) -> str:
    """
    Flat display color: the base color pulled toward the emissive color by the
    emissive intensity. `selected_intensity` replaces the intensity of the
    selection glow so the animation tick can pulse it.
    """
    intensity = material.emissive_intensity
    if selected_intensity is not None and material.emissive == SELECTED_COLOR:
        intensity = selected_intensity
    base = np.array(_hex_to_rgb(material.color), dtype=float)
    glow = np.array(_hex_to_rgb(material.emissive), dtype=float)
    mixed = np.clip(base * (1 - intensity) + glow * intensity, 0, 255).astype(int)
    return "#{:02x}{:02x}{:02x}".format(*mixed)


def _triangles(offset: int) -> Tuple[List[int], List[int], List[int]]:
    i_vals, j_vals, k_vals = [], [], []
    for face in BOX_FACES:
        # two triangles per quad face
        i_vals += [offset + face[0], offset + face[0]]
        j_vals += [offset + face[1], offset + face[2]]
        k_vals += [offset + face[2], offset + face[3]]
    return i_vals, j_vals, k_vals


def scene_bounds(registry: Registry) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    corners = [obj.corners() for obj in registry.objects()]
    if not corners:
        return None
    pts = np.vstack(corners)
    lo, hi = pts.min(axis=0), pts.max(axis=0)
    lo[1] = min(lo[1], 0.0)
    return lo, hi


def _ring(center, radius: float, spin: float, segments: int = 48) -> np.ndarray:
    angles = np.linspace(0, 2 * math.pi, segments + 1) + spin
    cx, cy, cz = center
    return np.column_stack([cx + radius * np.cos(angles), np.full_like(angles, cy), cz + radius * np.sin(angles)])


def create_rack_figure(
    registry: Registry,
    camera: OrbitCamera,
    locator: Optional[Locator] = None,
    effects: Optional[FrameEffects] = None,
    height: int = 720,
) -> go.Figure:
    """
    Build the 3D figure of every rack in the registry.

    Args:
        registry: Current scene registry
        camera: Camera whose orbit parameters position the Plotly eye
        locator: Selection marker, if a component is selected
        effects: Animation values for the current frame
        height: Figure height in pixels

    Returns:
        Plotly figure; clickable points carry the render object key as customdata
    """
    fig = go.Figure()
    pulse = effects.selected_intensity if effects is not None else None

    # Mesh per display color keeps the trace count small
    groups: Dict[str, List] = defaultdict(list)
    for obj in registry.objects():
        if obj.is_indicator:
            continue
        groups[shade(obj.material.material, pulse)].append(obj)

    for color, objs in groups.items():
        xs, ys, zs, i_vals, j_vals, k_vals = [], [], [], [], [], []
        for n, obj in enumerate(objs):
            x, y, z = to_plotly(obj.corners())
            xs += list(x)
            ys += list(y)
            zs += list(z)
            i, j, k = _triangles(n * 8)
            i_vals += i
            j_vals += j
            k_vals += k
        fig.add_trace(go.Mesh3d(
            x=xs, y=ys, z=zs,
            i=i_vals, j=j_vals, k=k_vals,
            color=color,
            flatshading=True,
            hoverinfo="skip",
            showlegend=False,
        ))

    # Click/hover targets: one point per addressable component
    handles = [obj for obj in registry.objects() if obj.addressable]
    if handles:
        x, y, z = to_plotly(np.array([obj.position for obj in handles]))
        fig.add_trace(go.Scatter3d(
            x=x, y=y, z=z,
            mode="markers",
            marker=dict(size=4, color="rgba(255, 255, 255, 0.15)"),
            customdata=[obj.key for obj in handles],
            text=[obj.label for obj in handles],
            hovertemplate="<b>%{text}</b><extra></extra>",
            name="Components",
            showlegend=False,
        ))

    indicators = [obj for obj in registry.objects() if obj.is_indicator]
    if indicators:
        x, y, z = to_plotly(np.array([obj.position for obj in indicators]))
        fig.add_trace(go.Scatter3d(
            x=x, y=y, z=z,
            mode="markers",
            marker=dict(size=6, color=indicators[0].material.material.color),
            customdata=[obj.key for obj in indicators],
            text=[registry.label(obj.parent_id) for obj in indicators],
            hovertemplate="<b>%{text}</b><br>Has maintenance records<extra></extra>",
            name="Records",
            showlegend=False,
        ))

    # Rack footprints on the floor
    for rack in registry.racks():
        corners = rack_footprint(rack)
        loop = np.vstack([corners, corners[:1]])
        fig.add_trace(go.Scatter3d(
            x=loop[:, 0], y=-loop[:, 1], z=np.zeros(len(loop)),
            mode="lines",
            line=dict(color=DARK_GRID, width=2),
            hoverinfo="skip",
            showlegend=False,
        ))

    if locator is not None:
        spin = effects.ring_spin if effects is not None else 0.0
        scale = effects.ring_scale if effects is not None else 1.0
        bounce = effects.arrow_offset if effects is not None else 0.0
        _, outer = locator.ring
        _, glow_outer = locator.glow_ring
        for radius, width, opacity in ((outer * scale, 6, 1.0), (glow_outer * scale, 3, 0.4)):
            x, y, z = to_plotly(_ring(locator.ring_center, radius, spin))
            fig.add_trace(go.Scatter3d(
                x=x, y=y, z=z,
                mode="lines",
                line=dict(color=locator.color, width=width),
                opacity=opacity,
                hoverinfo="skip",
                showlegend=False,
            ))
        cx, _, cz = locator.ring_center
        x, y, z = to_plotly(np.array([[cx, locator.arrow_base_y + bounce, cz]]))
        fig.add_trace(go.Cone(
            x=x, y=y, z=z, u=[0], v=[0], w=[-0.4],
            sizemode="absolute", sizeref=0.4, anchor="tip",
            colorscale=[[0, locator.color], [1, locator.color]],
            showscale=False,
            hoverinfo="skip",
        ))

    bounds = scene_bounds(registry)
    axis = dict(backgroundcolor=DARK_BG, gridcolor=DARK_GRID, showbackground=True, showgrid=True,
                zeroline=False, title="", showticklabels=False)
    fig.update_layout(
        scene=dict(
            xaxis=axis,
            yaxis=axis,
            zaxis=axis,
            aspectmode="data",
            camera=camera.plotly_camera(bounds),
            bgcolor=DARK_BG,
        ),
        height=height,
        margin=dict(l=0, r=0, t=0, b=0),
        paper_bgcolor=DARK_BG,
        plot_bgcolor=DARK_BG,
        uirevision=repr(sorted(camera.to_dict().items())),
    )
    return fig


def selected_key(event) -> Optional[str]:
    """Render object key of the first clicked point in a st.plotly_chart selection event."""
    if not event:
        return None
    selection = event.get("selection") if isinstance(event, dict) else getattr(event, "selection", None)
    if not selection:
        return None
    points = selection.get("points") if isinstance(selection, dict) else getattr(selection, "points", None)
    for point in points or []:
        key = point.get("customdata")
        if isinstance(key, list):
            key = key[0] if key else None
        if key:
            return key
    return None
