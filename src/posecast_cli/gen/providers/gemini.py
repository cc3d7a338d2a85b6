from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Optional

from google import genai
from google.genai import types

from ..config import ConfigError
from ..provider import DescriberProvider, ImageProvider
from ..types import GenerationRequest, ImageData, ResponsePart

if TYPE_CHECKING:
    from ..config import GeminiProviderConfig

logger = logging.getLogger(__name__)


def _image_part(image: ImageData) -> types.Part:
    return types.Part.from_bytes(data=image.data, mime_type=image.media_type)


def response_parts(response: Any) -> list[ResponsePart]:
    """Flatten the first candidate of a generate_content response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    parts: list[ResponsePart] = []
    for part in getattr(content, "parts", None) or []:
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data is not None else None
        if data:
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
            parts.append(ResponsePart(image=ImageData(data=data, media_type=mime_type)))
        elif getattr(part, "text", None):
            parts.append(ResponsePart(text=part.text))
    return parts


class GeminiProvider(DescriberProvider, ImageProvider):
    def __init__(self, config: "GeminiProviderConfig"):
        self._config = config
        self._client: Optional[genai.Client] = None

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            api_key = os.getenv(self._config.api_key_env)
            if not api_key:
                raise ConfigError(
                    f"Environment variable {self._config.api_key_env} is required "
                    "for the gemini provider"
                )
            self._client = genai.Client(api_key=api_key)
        return self._client

    async def describe(self, image: ImageData, instruction: str) -> str:
        contents = [
            types.Content(
                role="user",
                parts=[types.Part.from_text(text=instruction), _image_part(image)],
            )
        ]
        logger.debug(f"describe: model={self._config.vision_model}")
        response = await self.client.aio.models.generate_content(
            model=self._config.vision_model,
            contents=contents,
        )
        return (response.text or "").strip()

    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        parts = [_image_part(image) for image in req.reference_images]
        parts.append(types.Part.from_text(text=req.instruction))
        contents = [types.Content(role="user", parts=parts)]

        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            image_config=(
                types.ImageConfig(aspect_ratio=req.aspect_ratio) if req.aspect_ratio else None
            ),
        )
        logger.debug(
            f"generate: item={req.index} model={self._config.image_model} "
            f"references={len(req.reference_images)}"
        )
        response = await self.client.aio.models.generate_content(
            model=self._config.image_model,
            contents=contents,
            config=config,
        )
        return response_parts(response)
