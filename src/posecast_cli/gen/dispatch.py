from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from .provider import ImageProvider
from .types import GenerationRequest, ImageData, ResponsePart, ResultSlot

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 200

SlotCallback = Callable[[ResultSlot], None]


class GenerationItemError(Exception):
    """A single generation call produced no usable image."""

    pass


def first_image(parts: Sequence[ResponsePart]) -> ImageData:
    for part in parts:
        if part.image is not None and part.image.data:
            return part.image
    raise GenerationItemError("no image in response")


def short_reason(error: BaseException) -> str:
    text = str(error).strip().splitlines()[0] if str(error).strip() else ""
    reason = text or type(error).__name__
    if len(reason) > MAX_REASON_LENGTH:
        reason = reason[: MAX_REASON_LENGTH - 3] + "..."
    return reason


async def run_item(
    provider: ImageProvider,
    request: GenerationRequest,
    on_update: Optional[SlotCallback] = None,
) -> ResultSlot:
    slot = ResultSlot.pending(request)
    try:
        parts = await provider.generate(request)
        image = first_image(parts)
    except Exception as e:
        reason = short_reason(e)
        logger.warning(f"Item {request.index + 1} failed: {reason}")
        slot = slot.failed(reason)
    else:
        logger.info(f"Item {request.index + 1} succeeded ({image.media_type})")
        slot = slot.succeeded(image)

    if on_update is not None:
        try:
            on_update(slot)
        except Exception:
            logger.exception(f"Result handler failed for item {request.index + 1}")
    return slot


async def dispatch(
    provider: ImageProvider,
    requests: Sequence[GenerationRequest],
    on_update: Optional[SlotCallback] = None,
) -> list[ResultSlot]:
    """Issue one generation call per request concurrently.

    Returns one terminal ResultSlot per request, in request order. A failing
    call marks only its own slot as failed.
    """
    slots = await asyncio.gather(*(run_item(provider, r, on_update) for r in requests))
    return list(slots)
