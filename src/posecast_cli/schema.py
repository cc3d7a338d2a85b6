from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .gen.types import Role, StyleConfig

ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")


class BatchTrigger(BaseModel):
    """A request to generate one batch, as received from the user surface."""

    custom_scene_text: str = ""
    angles: list[Optional[str]] = Field(default_factory=list)
    random_poses: int = Field(default=0, ge=0)
    aspect_ratio: Optional[str] = None
    art_style: Optional[str] = None
    modification: Optional[str] = None

    @field_validator("aspect_ratio")
    @classmethod
    def _known_aspect_ratio(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip().lower() == "none":
            return None
        v = v.strip()
        if v not in ASPECT_RATIOS:
            raise ValueError(f"aspect_ratio must be one of {list(ASPECT_RATIOS)} or 'none', got '{v}'")
        return v

    def style(self) -> StyleConfig:
        return StyleConfig(
            aspect_ratio=self.aspect_ratio,
            art_style=self.art_style,
            modification=self.modification,
        )


class SlotRecord(BaseModel):
    image_path: str
    media_type: str
    image_sha256: str
    descriptor: Optional[str] = None


class SessionFile(BaseModel):
    version: int = 1
    slots: dict[Role, SlotRecord] = Field(default_factory=dict)
