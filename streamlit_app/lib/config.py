from pydantic import BaseModel, field_validator
from dotenv import load_dotenv
import logging
import os

load_dotenv()


class Settings(BaseModel):
    data_dir: str = os.getenv("DATA_DIR", "data")
    pallet_draw: str = os.getenv("PALLET_DRAW", "reroll").lower()
    default_view_mode: str = os.getenv("DEFAULT_VIEW_MODE", "normal").lower()
    scene_update: str = os.getenv("SCENE_UPDATE", "incremental").lower()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    max_upload_mb: int = int(os.getenv("MAX_UPLOAD_MB", "10"))

    @field_validator("pallet_draw")
    @classmethod
    def _pallet_draw(cls, v: str) -> str:
        if v not in ("reroll", "seeded"):
            raise ValueError("PALLET_DRAW must be 'reroll' or 'seeded'")
        return v

    @field_validator("default_view_mode")
    @classmethod
    def _view_mode(cls, v: str) -> str:
        if v not in ("normal", "health", "heatmap"):
            raise ValueError("DEFAULT_VIEW_MODE must be normal, health or heatmap")
        return v

    @field_validator("scene_update")
    @classmethod
    def _scene_update(cls, v: str) -> str:
        if v not in ("full", "incremental"):
            raise ValueError("SCENE_UPDATE must be 'full' or 'incremental'")
        return v


settings = Settings()


def configure_logging(level: str = settings.log_level) -> None:
    """Root logging setup for the Streamlit entry points. Safe to call on every rerun."""
    root = logging.getLogger()
    if not any(getattr(h, "_racking", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._racking = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
