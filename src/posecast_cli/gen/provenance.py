from __future__ import annotations

import datetime as _dt
import hashlib
import json
from pathlib import Path
from typing import Any, Optional

from .types import ResultSlot, SlotStatus


def bytes_sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def now_utc_iso() -> str:
    return _dt.datetime.now(tz=_dt.timezone.utc).isoformat().replace("+00:00", "Z")


def write_sidecar(out_path: Path, payload: dict[str, Any]) -> None:
    sidecar = out_path.with_suffix(out_path.suffix + ".json")
    sidecar.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def append_jsonl(log_path: Path, payload: dict[str, Any]) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, ensure_ascii=False) + "\n")


def item_path(out_dir: Path, slot: ResultSlot) -> Path:
    ext = slot.image.extension if slot.image is not None else "png"
    return out_dir / f"item_{slot.index + 1:02d}.{ext}"


def save_slot(out_dir: Path, slot: ResultSlot, provider_id: str) -> Optional[Path]:
    """Write a succeeded slot's image with its prompt sidecar and log the outcome.

    Returns the image path, or None for failed slots.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    entry = {
        "event": "item_" + slot.status.value,
        "index": slot.index,
        "scene": slot.scene.render(),
        "provider_id": provider_id,
        "timestamp": now_utc_iso(),
    }

    out_path: Optional[Path] = None
    if slot.status is SlotStatus.SUCCEEDED and slot.image is not None:
        out_path = item_path(out_dir, slot)
        out_path.write_bytes(slot.image.data)
        write_sidecar(
            out_path,
            {
                "index": slot.index,
                "scene": slot.scene.render(),
                "prompt": slot.instruction,
                "media_type": slot.image.media_type,
                "output_hash": bytes_sha256(slot.image.data)[:16],
                "provider_id": provider_id,
                "timestamp": entry["timestamp"],
            },
        )
        entry["out_path"] = str(out_path)
    else:
        entry["reason"] = slot.reason

    append_jsonl(out_dir / "batch.jsonl", entry)
    return out_path
