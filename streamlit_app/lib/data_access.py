from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from racking.collection import RackCollection
from racking.records import HealthMap, MaintenanceLog

from .config import settings

logger = logging.getLogger(__name__)

RACKS_FILE = "racks.json"
MAINTENANCE_FILE = "maintenance.json"
HEALTH_FILE = "health.json"
UPLOADS_DIR = "uploads"

ALLOWED_UPLOAD_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class UploadError(ValueError):
    """An uploaded image was rejected."""


def data_dir(base: Optional[Path] = None) -> Path:
    return Path(base) if base is not None else Path(settings.data_dir)


def _load(path: Path, default: Any) -> Any:
    if path.exists():
        return orjson.loads(path.read_bytes())
    return default


def _save(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    logger.info("Saved %s", path)


def load_racks(base: Optional[Path] = None) -> RackCollection:
    """Racks document; a missing file yields one default rack."""
    doc = _load(data_dir(base) / RACKS_FILE, {})
    if isinstance(doc, list):
        return RackCollection.from_json(doc)
    return RackCollection.from_json(doc.get("racks", []), doc.get("selectedRackId"))


def save_racks(racks: RackCollection, base: Optional[Path] = None) -> None:
    _save(data_dir(base) / RACKS_FILE, {"racks": racks.to_json(), "selectedRackId": racks.selected_id})


def load_maintenance(base: Optional[Path] = None) -> MaintenanceLog:
    return MaintenanceLog.from_json(_load(data_dir(base) / MAINTENANCE_FILE, {}))


def save_maintenance(log: MaintenanceLog, base: Optional[Path] = None) -> None:
    _save(data_dir(base) / MAINTENANCE_FILE, log.to_json())


def load_health(base: Optional[Path] = None) -> HealthMap:
    return HealthMap(_load(data_dir(base) / HEALTH_FILE, {}))


def save_health(health: HealthMap, base: Optional[Path] = None) -> None:
    _save(data_dir(base) / HEALTH_FILE, health.to_json())


def save_upload(
    filename: str,
    content_type: str,
    data: bytes,
    base: Optional[Path] = None,
    max_mb: Optional[int] = None,
) -> str:
    """
    Store an uploaded image under uploads/ with a timestamped name.

    Args:
        filename: Original client file name, only used for the stem
        content_type: MIME type reported by the uploader
        data: File contents
        base: Data directory override
        max_mb: Size limit override, defaults to MAX_UPLOAD_MB

    Returns:
        Storage path relative to the data directory, e.g. "uploads/1717000000000-crack.jpg"
    """
    ext = ALLOWED_UPLOAD_TYPES.get((content_type or "").lower())
    if ext is None:
        raise UploadError("Invalid file type. Only JPEG, PNG, and WebP are allowed.")
    limit = (max_mb if max_mb is not None else settings.max_upload_mb) * 1024 * 1024
    if len(data) > limit:
        raise UploadError(f"File too large. Maximum size is {limit // (1024 * 1024)}MB.")

    stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in Path(filename or "image").stem)[:40] or "image"
    name = f"{int(time.time() * 1000)}-{stem}{ext}"
    rel = Path(UPLOADS_DIR) / name
    path = data_dir(base) / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("Stored upload %s (%d bytes)", rel, len(data))
    return rel.as_posix()


def upload_path(stored: str, base: Optional[Path] = None) -> Path:
    return data_dir(base) / stored


def load_all(base: Optional[Path] = None) -> Dict[str, Any]:
    return {
        "racks": load_racks(base),
        "log": load_maintenance(base),
        "health": load_health(base),
    }
