from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..sampling import ChoiceSource, RandomChoice, sample_expressions
from ..schema import BatchTrigger
from .descriptors import analyze_slot
from .dispatch import SlotCallback, dispatch
from .prompting import PromptComposer, request_images
from .provider import DescriberProvider, ImageProvider
from .scenes import ResolvedScenes, resolve_scenes
from .types import GenerationRequest, ResultSlot, Role, SessionState, SlotStatus

logger = logging.getLogger(__name__)


class BatchError(Exception):
    """A batch-level problem found before any generation call is issued."""

    pass


class MissingPrimaryAsset(BatchError):
    def __init__(self, detail: str = "no primary image"):
        super().__init__(f"A primary reference is required before generating ({detail})")


class IncompleteOptionalAsset(BatchError):
    def __init__(self, role: Role):
        self.role = role
        super().__init__(
            f"The {role.value} reference has not been analyzed yet. "
            f"Analyze it or remove it before generating."
        )


class BatchInFlight(BatchError):
    def __init__(self):
        super().__init__("A batch is already running; wait for it to finish")


@dataclass
class BatchResult:
    resolved: ResolvedScenes
    requests: list[GenerationRequest] = field(default_factory=list)
    slots: list[ResultSlot] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ResultSlot]:
        return [s for s in self.slots if s.status is SlotStatus.SUCCEEDED]

    @property
    def failed(self) -> list[ResultSlot]:
        return [s for s in self.slots if s.status is SlotStatus.FAILED]

    @property
    def complete(self) -> bool:
        return len(self.slots) == len(self.requests) and all(s.is_terminal for s in self.slots)


def preflight(state: SessionState) -> None:
    """Reject a session that cannot produce a faithful batch.

    Raises:
        MissingPrimaryAsset: No primary image, or it has no descriptor.
        IncompleteOptionalAsset: An optional slot has an image but no descriptor.
    """
    primary = state.get(Role.PRIMARY)
    if primary is None:
        raise MissingPrimaryAsset()
    if not primary.has_descriptor:
        raise MissingPrimaryAsset("the primary image has not been analyzed")
    for role in (Role.SECONDARY, Role.PROP, Role.BACKGROUND):
        asset = state.get(role)
        if asset is not None and not asset.has_descriptor:
            raise IncompleteOptionalAsset(role)


class BatchOrchestrator:
    """Runs resolve -> compose -> dispatch for one session, one batch at a time."""

    def __init__(
        self,
        provider: ImageProvider,
        max_batch_size: int = 5,
        composer: Optional[PromptComposer] = None,
        source: Optional[ChoiceSource] = None,
    ):
        self.provider = provider
        self.max_batch_size = max_batch_size
        self.composer = composer or PromptComposer()
        self.source = source or RandomChoice()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def prepare(
        self, state: SessionState, trigger: BatchTrigger
    ) -> tuple[ResolvedScenes, list[GenerationRequest]]:
        preflight(state)
        resolved = resolve_scenes(
            trigger.custom_scene_text,
            two_subjects=state.described(Role.SECONDARY) is not None,
            max_batch_size=self.max_batch_size,
            angles=trigger.angles,
            random_poses=trigger.random_poses,
            source=self.source,
        )
        style = trigger.style()
        images = request_images(state)
        expressions = sample_expressions(self.source, len(resolved.scenes))
        requests = [
            GenerationRequest(
                index=i,
                scene=scene,
                instruction=self.composer.compose(state, scene, expression, style),
                reference_images=images,
                aspect_ratio=style.aspect_ratio_value,
                art_style=style.art_style_value,
            )
            for i, (scene, expression) in enumerate(zip(resolved.scenes, expressions))
        ]
        return resolved, requests

    async def run(
        self,
        state: SessionState,
        trigger: BatchTrigger,
        on_update: Optional[SlotCallback] = None,
    ) -> BatchResult:
        """Generate one batch and wait until every item is terminal.

        Raises:
            BatchInFlight: If a previous batch has not finished.
            BatchError, EmptySceneList: Before any call is issued.
        """
        if self._busy:
            raise BatchInFlight()
        self._busy = True
        try:
            resolved, requests = self.prepare(state, trigger)
            logger.info(
                f"Dispatching {len(requests)} item(s) to {self.provider.provider_id} "
                f"(cap {self.max_batch_size}, truncated={resolved.truncated})"
            )
            slots = await dispatch(self.provider, requests, on_update)
        finally:
            self._busy = False

        result = BatchResult(resolved=resolved, requests=requests, slots=slots)
        logger.info(
            f"Batch complete: {len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def sample(
        self,
        state: SessionState,
        trigger: Optional[BatchTrigger] = None,
        describer: Optional[DescriberProvider] = None,
        on_update: Optional[SlotCallback] = None,
    ) -> tuple[SessionState, BatchResult]:
        """Generate a single preview from one random library pose.

        The primary descriptor is extracted first when missing and a describer
        is given; the possibly updated state is returned with the result.
        """
        primary = state.get(Role.PRIMARY)
        if primary is not None and not primary.has_descriptor and describer is not None:
            state = await analyze_slot(state, Role.PRIMARY, describer)

        base = trigger or BatchTrigger()
        preview = base.model_copy(update={"custom_scene_text": "", "random_poses": 1})
        return state, await self.run(state, preview, on_update)
