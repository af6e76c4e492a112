"""
Per-session application state: racks, records, health, scene and camera.

Pages fetch the workspace with get_workspace(st), mutate it through its
methods and call save() afterwards; the scene is refreshed lazily before
rendering.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from racking.camera import CameraRig
from racking.collection import RackCollection
from racking.layout import PalletDraw
from racking.models import HealthStatus, MaintenanceRecord, MaintenanceType, RecordStatus, ViewMode
from racking.picking import InteractionState
from racking.records import HealthMap, MaintenanceLog
from racking.scene import Registry, SceneBuilder, SceneState
from racking.snapshot import Snapshot

from . import data_access as da
from .config import settings

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    racks: RackCollection
    log: MaintenanceLog
    health: HealthMap
    data_dir: Optional[Path] = None
    incremental: bool = True
    builder: SceneBuilder = field(default_factory=SceneBuilder)
    rig: CameraRig = field(default_factory=CameraRig)
    interaction: InteractionState = field(default_factory=InteractionState)
    # bumped whenever the state is replaced wholesale, so keyed widgets reset
    revision: int = 0

    def __post_init__(self):
        self.interaction.select_rack(self.racks.selected_id)

    @property
    def registry(self) -> Registry:
        return self.builder.registry

    @property
    def view_mode(self) -> ViewMode:
        return self.interaction.view_mode

    def set_view_mode(self, mode) -> None:
        self.interaction.view_mode = ViewMode(mode)

    def scene_state(self, now: Optional[datetime] = None) -> SceneState:
        return SceneState(
            racks=self.racks.racks,
            records=self.log.as_mapping(),
            health=self.health.as_mapping(),
            view_mode=self.interaction.view_mode,
            selected_component=self.interaction.selected_component,
            selected_rack_id=self.racks.selected_id,
            now=now,
        )

    def _build(self, now: Optional[datetime]) -> Registry:
        state = self.scene_state(now)
        return self.builder.update(state) if self.incremental else self.builder.rebuild(state)

    def refresh(self, now: Optional[datetime] = None) -> Registry:
        """Bring the scene and camera up to date with the current state."""
        registry = self._build(now)
        # drop a selection whose component disappeared with a config change
        if self.interaction.selected_component and self.interaction.selected_component not in registry:
            self.interaction.select(None)
            registry = self._build(now)
        self.rig.on_rack_selected(self.racks.selected)
        return registry

    # -- selection ------------------------------------------------------

    def select_rack(self, rack_id: str) -> None:
        self.racks.select(rack_id)
        self.interaction.select_rack(rack_id)

    def select_component(self, component_id: Optional[str]) -> None:
        self.interaction.select(component_id, self.registry)
        if self.interaction.selected_rack_id and self.interaction.selected_rack_id != self.racks.selected_id:
            self.racks.select(self.interaction.selected_rack_id)

    # -- records --------------------------------------------------------

    def add_record(
        self,
        component_id: str,
        type: MaintenanceType,
        description: str,
        technician: Optional[str] = None,
        status: RecordStatus = RecordStatus.COMPLETED,
        images: Optional[List[str]] = None,
    ) -> MaintenanceRecord:
        record = self.log.add(component_id, type, description, technician, status, images)
        self.save()
        return record

    def set_health(self, component_id: str, status: HealthStatus) -> None:
        self.health.set(component_id, status)
        self.save()

    def replace(self, snapshot: Snapshot) -> None:
        """Swap in an imported snapshot; records and health are kept when it has none."""
        self.racks = RackCollection(snapshot.racks, snapshot.selected_id)
        if snapshot.log is not None:
            self.log = snapshot.log
        if snapshot.health is not None:
            self.health = snapshot.health
        self.interaction = InteractionState(view_mode=self.interaction.view_mode)
        self.interaction.select_rack(self.racks.selected_id)
        self.builder.clear()
        self.revision += 1
        self.save()

    def save(self) -> None:
        da.save_racks(self.racks, self.data_dir)
        da.save_maintenance(self.log, self.data_dir)
        da.save_health(self.health, self.data_dir)


def load_workspace(data_dir: Optional[Path] = None) -> Workspace:
    data = da.load_all(data_dir)
    ws = Workspace(
        racks=data["racks"],
        log=data["log"],
        health=data["health"],
        data_dir=data_dir,
        incremental=settings.scene_update == "incremental",
        builder=SceneBuilder(PalletDraw(settings.pallet_draw)),
        interaction=InteractionState(view_mode=ViewMode(settings.default_view_mode)),
    )
    logger.info("Loaded workspace: %d racks, %d records", len(ws.racks), len(ws.log))
    return ws


def get_workspace(st) -> Workspace:
    """Get or create the Workspace from session state."""
    if "workspace" not in st.session_state:
        st.session_state["workspace"] = load_workspace()
    return st.session_state["workspace"]
