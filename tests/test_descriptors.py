from __future__ import annotations

import asyncio

import pytest

from posecast_cli.gen.descriptors import (
    BACKGROUND_TEMPLATE,
    CHARACTER_TEMPLATE,
    PROP_TEMPLATE,
    ExtractionError,
    analyze_slot,
    extract,
    template_for,
)
from posecast_cli.gen.types import ImageData, Role, SessionState


def _image(tag: str) -> ImageData:
    return ImageData(data=tag.encode(), media_type="image/webp")


class TestTemplates:
    def test_character_roles_share_the_face_template(self) -> None:
        assert template_for(Role.PRIMARY) is CHARACTER_TEMPLATE
        assert template_for(Role.SECONDARY) is CHARACTER_TEMPLATE
        for feature in ("eye shape", "nose", "lip", "jawline", "hair", "clothing", "art style"):
            assert feature in CHARACTER_TEMPLATE

    def test_prop_and_background_templates(self) -> None:
        assert template_for(Role.PROP) is PROP_TEMPLATE
        assert template_for(Role.BACKGROUND) is BACKGROUND_TEMPLATE
        for feature in ("material", "texture", "shape", "markings"):
            assert feature in PROP_TEMPLATE
        for feature in ("lighting", "mood"):
            assert feature in BACKGROUND_TEMPLATE


class TestExtract:
    def test_returns_trimmed_text(self, describer) -> None:
        describer.text = "  a dense paragraph \n"
        text = asyncio.run(extract(describer, _image("x"), Role.PROP))
        assert text == "a dense paragraph"
        image, instruction = describer.calls[0]
        assert image.media_type == "image/webp"
        assert instruction == PROP_TEMPLATE

    def test_empty_text_is_an_error(self, describer) -> None:
        describer.text = "   "
        with pytest.raises(ExtractionError) as exc_info:
            asyncio.run(extract(describer, _image("x"), Role.PRIMARY))
        assert exc_info.value.role is Role.PRIMARY
        assert "empty" in exc_info.value.reason

    def test_provider_error_is_wrapped(self, describer) -> None:
        describer.error = RuntimeError("503 service unavailable")
        with pytest.raises(ExtractionError) as exc_info:
            asyncio.run(extract(describer, _image("x"), Role.BACKGROUND))
        assert "503" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestAnalyzeSlot:
    def test_attaches_descriptor_to_that_slot_only(self, describer) -> None:
        state = SessionState().populate(Role.PRIMARY, _image("p")).populate(Role.PROP, _image("k"))
        state = state.attach_descriptor(Role.PRIMARY, "existing")
        describer.text = "a brass compass"

        updated = asyncio.run(analyze_slot(state, Role.PROP, describer))

        assert updated.get(Role.PROP).descriptor == "a brass compass"
        assert updated.get(Role.PRIMARY).descriptor == "existing"
        assert state.get(Role.PROP).descriptor is None

    def test_failure_keeps_other_descriptors(self, describer) -> None:
        state = SessionState().populate(Role.PRIMARY, _image("p")).populate(Role.PROP, _image("k"))
        state = state.attach_descriptor(Role.PRIMARY, "existing")
        describer.error = TimeoutError()

        with pytest.raises(ExtractionError) as exc_info:
            asyncio.run(analyze_slot(state, Role.PROP, describer))
        assert exc_info.value.reason == "TimeoutError"
        assert state.get(Role.PRIMARY).descriptor == "existing"

    def test_empty_slot_is_an_error(self, describer) -> None:
        with pytest.raises(ExtractionError):
            asyncio.run(analyze_slot(SessionState(), Role.SECONDARY, describer))
        assert describer.calls == []
