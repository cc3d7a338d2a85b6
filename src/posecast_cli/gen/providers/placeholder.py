from __future__ import annotations

import hashlib
import io
import textwrap
from typing import TYPE_CHECKING, Optional

from PIL import Image, ImageDraw

from ..provider import DescriberProvider, ImageProvider
from ..types import GenerationRequest, ImageData, ResponsePart

if TYPE_CHECKING:
    from ..config import PlaceholderProviderConfig


BACKGROUND_COLORS = [
    (240, 240, 240),
    (200, 220, 255),
    (220, 255, 220),
    (255, 230, 200),
    (235, 210, 255),
]


def _size_for(aspect_ratio: Optional[str], width: int, height: int) -> tuple[int, int]:
    if not aspect_ratio:
        return width, height
    try:
        w, h = (int(p) for p in aspect_ratio.split(":", 1))
    except ValueError:
        return width, height
    if w <= 0 or h <= 0:
        return width, height
    return width, max(1, width * h // w)


class PlaceholderProvider(DescriberProvider, ImageProvider):
    """Offline stand-in for the description and generation services."""

    def __init__(self, config: "PlaceholderProviderConfig | None" = None):
        self._config = config
        self._width = config.width if config else 768
        self._height = config.height if config else 768

    @property
    def provider_id(self) -> str:
        return "placeholder"

    async def describe(self, image: ImageData, instruction: str) -> str:
        digest = hashlib.sha256(image.data).hexdigest()[:12]
        focus = instruction.split(".", 1)[0].strip()
        return (
            f"Placeholder description of reference {digest} ({image.media_type}). "
            f"{focus}."
        )

    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        width, height = _size_for(req.aspect_ratio, self._width, self._height)
        color = BACKGROUND_COLORS[req.index % len(BACKGROUND_COLORS)]
        img = Image.new("RGB", (width, height), color)
        d = ImageDraw.Draw(img)
        margin = min(width, height) // 16
        d.rectangle(
            [margin, margin, width - margin, height - margin],
            outline=(0, 0, 0),
            width=4,
        )

        label_lines = [
            f"Item: {req.index + 1}",
            f"References: {len(req.reference_images)}",
            f"Aspect: {req.aspect_ratio or 'reference'}",
            f"Style: {req.art_style or 'reference'}",
            "",
            *textwrap.wrap(req.scene.render(), width=40),
        ]
        d.text((margin + 16, margin + 16), "\n".join(label_lines), fill=(0, 0, 0))

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return [
            ResponsePart(text=f"Placeholder render for item {req.index + 1}"),
            ResponsePart(image=ImageData(data=buf.getvalue(), media_type="image/png")),
        ]
