from __future__ import annotations

from pathlib import Path

import pytest

from posecast_cli.gen.types import (
    GenerationRequest,
    ImageData,
    ResultSlot,
    Role,
    SceneSpec,
    SessionState,
    SlotStatus,
    StyleConfig,
)


def _image(tag: str) -> ImageData:
    return ImageData(data=tag.encode(), media_type="image/png")


class TestImageData:
    def test_from_path_infers_media_type(self, tmp_path: Path) -> None:
        path = tmp_path / "hero.JPG"
        path.write_bytes(b"jpeg-bytes")
        image = ImageData.from_path(path)
        assert image.media_type == "image/jpeg"
        assert image.data == b"jpeg-bytes"
        assert image.extension == "jpg"

    def test_from_path_rejects_unknown_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ValueError) as exc_info:
            ImageData.from_path(path)
        assert ".txt" in str(exc_info.value)


class TestSessionState:
    def test_populate_clears_existing_descriptor(self) -> None:
        state = SessionState().populate(Role.PRIMARY, _image("a"))
        state = state.attach_descriptor(Role.PRIMARY, "described")
        assert state.get(Role.PRIMARY).has_descriptor

        replaced = state.populate(Role.PRIMARY, _image("b"))
        assert replaced.get(Role.PRIMARY).descriptor is None
        assert state.get(Role.PRIMARY).descriptor == "described"

    def test_attach_descriptor_requires_image(self) -> None:
        with pytest.raises(ValueError):
            SessionState().attach_descriptor(Role.PROP, "a sword")

    def test_remove_drops_image_and_descriptor(self) -> None:
        state = SessionState().populate(Role.PROP, _image("p")).attach_descriptor(Role.PROP, "x")
        assert state.remove(Role.PROP).get(Role.PROP) is None

    def test_reference_images_follow_canonical_order(self) -> None:
        state = SessionState()
        state = state.populate(Role.BACKGROUND, _image("bg"))
        state = state.populate(Role.PRIMARY, _image("p1"))
        state = state.populate(Role.PROP, _image("prop"))
        for role in (Role.BACKGROUND, Role.PRIMARY, Role.PROP):
            state = state.attach_descriptor(role, role.value)
        assert state.populated_roles() == [Role.PRIMARY, Role.PROP, Role.BACKGROUND]
        assert [i.data for i in state.reference_images()] == [b"p1", b"prop", b"bg"]

    def test_reference_images_skip_undescribed_slots(self) -> None:
        state = SessionState().populate(Role.PRIMARY, _image("p1"))
        state = state.attach_descriptor(Role.PRIMARY, "hero")
        state = state.populate(Role.SECONDARY, _image("s"))
        assert [i.data for i in state.reference_images()] == [b"p1"]

    def test_blank_descriptor_is_not_described(self) -> None:
        state = SessionState().populate(Role.SECONDARY, _image("s"))
        state = state.attach_descriptor(Role.SECONDARY, "   ")
        assert state.described(Role.SECONDARY) is None


class TestSceneAndStyle:
    def test_angle_is_prefixed(self) -> None:
        assert SceneSpec("running", angle="low-angle shot").render() == "low-angle shot: running"
        assert SceneSpec("running").render() == "running"

    def test_none_means_unset(self) -> None:
        style = StyleConfig(aspect_ratio="none", art_style="None", modification=" ")
        assert style.aspect_ratio_value is None
        assert style.art_style_value is None
        assert style.modification_value is None
        assert StyleConfig(art_style=" watercolor ").art_style_value == "watercolor"


class TestResultSlot:
    def test_transitions_are_terminal(self) -> None:
        req = GenerationRequest(index=2, scene=SceneSpec("x"), instruction="do x", reference_images=())
        slot = ResultSlot.pending(req)
        assert slot.status is SlotStatus.PENDING
        assert not slot.is_terminal

        done = slot.succeeded(_image("out"))
        assert done.is_terminal and done.image.data == b"out" and done.index == 2

        failed = slot.failed("quota exceeded")
        assert failed.status is SlotStatus.FAILED
        assert failed.reason == "quota exceeded"
        assert failed.image is None
