"""
Per-frame visual effects.

The host calls tick() once per rendered frame with the elapsed wall-clock
time. Nothing here touches racks, records or the scene registry.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class FrameEffects:
    selected_intensity: float
    arrow_offset: float
    ring_spin: float
    ring_scale: float


def tick(elapsed: float) -> FrameEffects:
    pulse = (math.sin(elapsed * 4) + 1) / 2
    return FrameEffects(
        selected_intensity=0.3 + pulse * 0.5,
        arrow_offset=math.sin(elapsed * 3) * 0.2,
        ring_spin=elapsed * 2,
        ring_scale=1 + math.sin(elapsed * 4) * 0.1,
    )
