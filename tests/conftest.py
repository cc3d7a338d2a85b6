from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from posecast_cli.gen.provider import DescriberProvider, ImageProvider
from posecast_cli.gen.types import GenerationRequest, ImageData, ResponsePart, Role, SessionState


def make_image(tag: str, media_type: str = "image/png") -> ImageData:
    return ImageData(data=f"image:{tag}".encode(), media_type=media_type)


class FakeImageProvider(ImageProvider):
    """Records requests; items can be scripted to fail, come back empty, or wait."""

    def __init__(self):
        self.requests: list[GenerationRequest] = []
        self.fail_on: dict[int, Exception] = {}
        self.empty_on: set[int] = set()
        self.delays: dict[int, float] = {}
        self.gate: Optional[asyncio.Event] = None

    @property
    def provider_id(self) -> str:
        return "fake"

    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        self.requests.append(req)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(self.delays.get(req.index, 0))
        if req.index in self.fail_on:
            raise self.fail_on[req.index]
        if req.index in self.empty_on:
            return [ResponsePart(text="I could not draw that.")]
        return [
            ResponsePart(text="Here you go"),
            ResponsePart(image=make_image(f"out-{req.index}")),
            ResponsePart(image=make_image(f"extra-{req.index}")),
        ]


class FakeDescriber(DescriberProvider):
    def __init__(self, text: str = "a dense description", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: list[tuple[ImageData, str]] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    async def describe(self, image: ImageData, instruction: str) -> str:
        self.calls.append((image, instruction))
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def describer() -> FakeDescriber:
    return FakeDescriber()


@pytest.fixture
def warrior_state() -> SessionState:
    state = SessionState().populate(Role.PRIMARY, make_image("warrior"))
    return state.attach_descriptor(Role.PRIMARY, "a red-haired warrior with green eyes")


@pytest.fixture
def full_state(warrior_state: SessionState) -> SessionState:
    state = warrior_state
    state = state.populate(Role.SECONDARY, make_image("monk"))
    state = state.attach_descriptor(Role.SECONDARY, "a bald monk in saffron robes")
    state = state.populate(Role.PROP, make_image("staff"))
    state = state.attach_descriptor(Role.PROP, "a gnarled oak staff bound in brass")
    state = state.populate(Role.BACKGROUND, make_image("temple"))
    return state.attach_descriptor(Role.BACKGROUND, "a misty mountain temple at dawn")
