from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .gen.provenance import bytes_sha256
from .gen.types import ImageData, Role, SessionState
from .io import load_model, write_model
from .schema import SessionFile, SlotRecord

logger = logging.getLogger(__name__)

SESSION_FILENAME = "posecast.session.yaml"


class Session:
    """A SessionState bound to the image files it was populated from.

    Only the CLI needs this; the batch pipeline works on SessionState alone.
    """

    def __init__(self, path: Path, state: Optional[SessionState] = None, sources: Optional[dict[Role, Path]] = None):
        self.path = path
        self.state = state or SessionState()
        self.sources: dict[Role, Path] = dict(sources or {})

    @classmethod
    def load(cls, path: Path) -> "Session":
        if not path.exists():
            return cls(path)

        record = load_model(SessionFile, path)
        state = SessionState()
        sources: dict[Role, Path] = {}
        for role in Role.order():
            rec = record.slots.get(role)
            if rec is None:
                continue
            image_path = Path(rec.image_path)
            if not image_path.is_absolute():
                image_path = path.parent / image_path
            if not image_path.exists():
                logger.warning(f"{role.value} image {image_path} is missing; slot cleared")
                continue

            image = ImageData(data=image_path.read_bytes(), media_type=rec.media_type)
            state = state.populate(role, image)
            sources[role] = image_path
            if rec.descriptor:
                if bytes_sha256(image.data) == rec.image_sha256:
                    state = state.attach_descriptor(role, rec.descriptor)
                else:
                    logger.info(f"{role.value} image changed since analysis; descriptor cleared")
        return cls(path, state, sources)

    def add(self, role: Role, image_path: Path) -> None:
        image = ImageData.from_path(image_path)
        self.state = self.state.populate(role, image)
        self.sources[role] = image_path.resolve()

    def remove(self, role: Role) -> None:
        self.state = self.state.remove(role)
        self.sources.pop(role, None)

    def update(self, state: SessionState) -> None:
        """Adopt a state returned by an operation on the current one."""
        self.state = state

    def save(self) -> Path:
        slots = {}
        for asset in self.state:
            slots[asset.role] = SlotRecord(
                image_path=str(self.sources[asset.role]),
                media_type=asset.image.media_type,
                image_sha256=bytes_sha256(asset.image.data),
                descriptor=asset.descriptor,
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_model(SessionFile(slots=slots), self.path)
        return self.path
