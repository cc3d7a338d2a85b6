from __future__ import annotations

import logging

from .provider import DescriberProvider
from .types import ImageData, Role, SessionState

logger = logging.getLogger(__name__)


CHARACTER_TEMPLATE = (
    "Act as an expert character concept artist. Your goal is to create a "
    '"character sheet" prompt that ensures perfect consistency for an image '
    "generation model. Focus obsessively on the face. Break down every facial "
    'feature with extreme detail: eye shape (e.g., "almond-shaped", "hooded"), '
    'eye color (be specific, e.g., "emerald green with gold flecks"), nose bridge '
    'and tip, lip shape and fullness, jawline (e.g., "sharp", "soft"), and any '
    "unique markers like freckles or scars. After the face, describe hair style "
    "and color, then clothing in detail. Conclude with the art style (e.g., "
    '"modern anime style with soft lighting"). The output must be a single, '
    "dense paragraph, ready to be used as a base prompt."
)

PROP_TEMPLATE = (
    "Act as an expert prop designer. Describe the object in this image so an "
    "image generation model can reproduce it exactly. Cover its overall shape "
    "and silhouette, proportions and approximate size, every material (e.g., "
    '"brushed steel", "worn leather", "lacquered wood"), surface texture and '
    "finish, exact colors, and any markings, engravings, logos, wear or damage. "
    "Conclude with the art style of the image. The output must be a single, "
    "dense paragraph, ready to be used as a base prompt."
)

BACKGROUND_TEMPLATE = (
    "Act as an expert environment artist. Describe the location in this image "
    "so an image generation model can reproduce it as a backdrop. Cover the "
    "type of place and its key architectural or natural features, the layout "
    "and depth of the space, the lighting (direction, color temperature, time "
    "of day, shadows), the weather and atmosphere, the color palette and the "
    "overall mood. Conclude with the art style of the image. The output must be "
    "a single, dense paragraph, ready to be used as a base prompt."
)


class ExtractionError(Exception):
    def __init__(self, role: Role, reason: str):
        self.role = role
        self.reason = reason
        super().__init__(f"Could not analyze {role.value} reference: {reason}")


def template_for(role: Role) -> str:
    if role.is_character:
        return CHARACTER_TEMPLATE
    if role is Role.PROP:
        return PROP_TEMPLATE
    return BACKGROUND_TEMPLATE


async def extract(provider: DescriberProvider, image: ImageData, role: Role) -> str:
    """Turn one reference image into its descriptor paragraph.

    Raises:
        ExtractionError: If the description call fails or returns no text.
    """
    try:
        text = await provider.describe(image, template_for(role))
    except Exception as e:
        raise ExtractionError(role, str(e) or type(e).__name__) from e

    text = (text or "").strip()
    if not text:
        raise ExtractionError(role, "empty description returned")
    return text


async def analyze_slot(
    state: SessionState,
    role: Role,
    provider: DescriberProvider,
) -> SessionState:
    """Extract and attach the descriptor for one populated slot.

    On failure the given state is left as it was and ExtractionError propagates.
    """
    asset = state.get(role)
    if asset is None:
        raise ExtractionError(role, "no image in this slot")

    logger.info(f"Analyzing {role.value} reference ({asset.image.media_type})")
    try:
        descriptor = await extract(provider, asset.image, role)
    except ExtractionError as e:
        logger.warning(f"Extraction failed for {role.value}: {e.reason}")
        raise
    logger.info(f"Extracted {role.value} descriptor ({len(descriptor)} chars)")
    return state.attach_descriptor(role, descriptor)
