from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional


class Role(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    PROP = "prop"
    BACKGROUND = "background"

    @classmethod
    def order(cls) -> tuple["Role", ...]:
        return (cls.PRIMARY, cls.SECONDARY, cls.PROP, cls.BACKGROUND)

    @property
    def is_character(self) -> bool:
        return self in (Role.PRIMARY, Role.SECONDARY)


MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".heic": "image/heic",
    ".heif": "image/heif",
}

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
}


@dataclass(frozen=True)
class ImageData:
    data: bytes
    media_type: str

    @classmethod
    def from_path(cls, path: Path) -> "ImageData":
        media_type = MEDIA_TYPES.get(path.suffix.lower())
        if media_type is None:
            raise ValueError(
                f"Unsupported image type '{path.suffix}' for {path}. "
                f"Supported: {', '.join(sorted(MEDIA_TYPES))}"
            )
        return cls(data=path.read_bytes(), media_type=media_type)

    @property
    def extension(self) -> str:
        return EXTENSIONS.get(self.media_type, "bin")

    def __repr__(self) -> str:
        return f"ImageData(media_type={self.media_type!r}, size={len(self.data)})"


@dataclass(frozen=True)
class ReferenceAsset:
    role: Role
    image: ImageData
    descriptor: Optional[str] = None

    @property
    def has_descriptor(self) -> bool:
        return bool(self.descriptor and self.descriptor.strip())


@dataclass(frozen=True)
class SessionState:
    """The four reference slots of one session.

    Every operation returns a new state; a state handed to a batch is never
    changed underneath it.
    """

    slots: dict[Role, ReferenceAsset] = field(default_factory=dict)

    def get(self, role: Role) -> Optional[ReferenceAsset]:
        return self.slots.get(role)

    def populate(self, role: Role, image: ImageData) -> "SessionState":
        slots = dict(self.slots)
        slots[role] = ReferenceAsset(role=role, image=image)
        return SessionState(slots)

    def remove(self, role: Role) -> "SessionState":
        slots = dict(self.slots)
        slots.pop(role, None)
        return SessionState(slots)

    def attach_descriptor(self, role: Role, descriptor: str) -> "SessionState":
        asset = self.slots.get(role)
        if asset is None:
            raise ValueError(f"Cannot attach a descriptor to empty slot '{role.value}'")
        slots = dict(self.slots)
        slots[role] = replace(asset, descriptor=descriptor)
        return SessionState(slots)

    def populated_roles(self) -> list[Role]:
        return [r for r in Role.order() if r in self.slots]

    def described(self, role: Role) -> Optional[ReferenceAsset]:
        """The asset for `role` only if it carries a usable descriptor."""
        asset = self.slots.get(role)
        if asset is not None and asset.has_descriptor:
            return asset
        return None

    def reference_images(self) -> tuple[ImageData, ...]:
        """Images of the described slots, in canonical role order."""
        described = (self.described(r) for r in Role.order())
        return tuple(asset.image for asset in described if asset is not None)

    def __iter__(self) -> Iterator[ReferenceAsset]:
        return (self.slots[r] for r in self.populated_roles())


@dataclass(frozen=True)
class SceneSpec:
    text: str
    angle: Optional[str] = None

    def render(self) -> str:
        if self.angle:
            return f"{self.angle}: {self.text}"
        return self.text


def is_set(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != "none"


@dataclass(frozen=True)
class StyleConfig:
    aspect_ratio: Optional[str] = None
    art_style: Optional[str] = None
    modification: Optional[str] = None

    @property
    def aspect_ratio_value(self) -> Optional[str]:
        return self.aspect_ratio.strip() if is_set(self.aspect_ratio) else None

    @property
    def art_style_value(self) -> Optional[str]:
        return self.art_style.strip() if is_set(self.art_style) else None

    @property
    def modification_value(self) -> Optional[str]:
        return self.modification.strip() if is_set(self.modification) else None


@dataclass(frozen=True)
class GenerationRequest:
    index: int
    scene: SceneSpec
    instruction: str
    reference_images: tuple[ImageData, ...]
    aspect_ratio: Optional[str] = None
    art_style: Optional[str] = None


@dataclass(frozen=True)
class ResponsePart:
    text: Optional[str] = None
    image: Optional[ImageData] = None


class SlotStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ResultSlot:
    index: int
    scene: SceneSpec
    instruction: str
    status: SlotStatus = SlotStatus.PENDING
    image: Optional[ImageData] = None
    reason: Optional[str] = None

    @classmethod
    def pending(cls, request: GenerationRequest) -> "ResultSlot":
        return cls(index=request.index, scene=request.scene, instruction=request.instruction)

    def succeeded(self, image: ImageData) -> "ResultSlot":
        return replace(self, status=SlotStatus.SUCCEEDED, image=image, reason=None)

    def failed(self, reason: str) -> "ResultSlot":
        return replace(self, status=SlotStatus.FAILED, image=None, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.status is not SlotStatus.PENDING
