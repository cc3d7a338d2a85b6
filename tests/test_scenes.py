from __future__ import annotations

import pytest

from posecast_cli.gen.scenes import (
    POSE_LIBRARY,
    SINGLE_SUBJECT_SCENES,
    TWO_SUBJECT_SCENES,
    EmptySceneList,
    resolve_scenes,
)
from posecast_cli.gen.types import SceneSpec
from posecast_cli.sampling import SequenceChoice


class TestDefaults:
    def test_single_subject_defaults(self) -> None:
        res = resolve_scenes("", two_subjects=False, max_batch_size=5)
        assert [s.text for s in res.scenes] == list(SINGLE_SUBJECT_SCENES)
        assert len(res.scenes) == 5
        assert not res.truncated
        assert res.notice is None

    def test_two_subject_defaults(self) -> None:
        res = resolve_scenes(None, two_subjects=True, max_batch_size=10)
        assert [s.text for s in res.scenes] == list(TWO_SUBJECT_SCENES)

    def test_default_tables_differ(self) -> None:
        assert set(SINGLE_SUBJECT_SCENES).isdisjoint(TWO_SUBJECT_SCENES)

    def test_defaults_truncate_without_notice(self) -> None:
        res = resolve_scenes("", two_subjects=False, max_batch_size=3)
        assert len(res.scenes) == 3
        assert res.truncated
        assert res.notice is None


class TestCustomText:
    def test_lines_are_trimmed_and_blank_lines_dropped(self) -> None:
        text = "  first scene  \n\n\tsecond scene\n   \nthird"
        res = resolve_scenes(text, two_subjects=False, max_batch_size=5)
        assert [s.text for s in res.scenes] == ["first scene", "second scene", "third"]
        assert not res.truncated

    def test_oversized_list_keeps_first_entries_in_order(self) -> None:
        text = "\n".join(f"scene {i}" for i in range(1, 9))
        res = resolve_scenes(text, two_subjects=False, max_batch_size=5)
        assert [s.text for s in res.scenes] == [f"scene {i}" for i in range(1, 6)]
        assert res.truncated
        assert "8 scenes requested" in res.notice

    def test_all_blank_custom_text_is_an_error(self) -> None:
        with pytest.raises(EmptySceneList):
            resolve_scenes("\n   \n\t\n", two_subjects=False, max_batch_size=5)

    def test_angles_pair_positionally(self) -> None:
        res = resolve_scenes(
            "running\njumping\nresting",
            two_subjects=False,
            max_batch_size=5,
            angles=["low-angle shot", None, "bird's-eye view"],
        )
        assert res.scenes == [
            SceneSpec("running", angle="low-angle shot"),
            SceneSpec("jumping"),
            SceneSpec("resting", angle="bird's-eye view"),
        ]
        assert res.scenes[0].render() == "low-angle shot: running"

    def test_custom_text_ignores_secondary_state(self) -> None:
        res = resolve_scenes("dancing", two_subjects=True, max_batch_size=5)
        assert [s.text for s in res.scenes] == ["dancing"]


class TestRandomPoses:
    def test_draws_distinct_library_poses(self) -> None:
        res = resolve_scenes(
            "", two_subjects=False, max_batch_size=5, random_poses=3, source=SequenceChoice([0])
        )
        assert [s.text for s in res.scenes] == list(POSE_LIBRARY[:3])

    def test_draw_larger_than_cap_is_truncated_with_notice(self) -> None:
        res = resolve_scenes(
            "", two_subjects=False, max_batch_size=5, random_poses=7, source=SequenceChoice([1])
        )
        assert len(res.scenes) == 5
        assert len({s.text for s in res.scenes}) == 5
        assert res.truncated
        assert res.notice is not None

    def test_custom_text_wins_over_random_draw(self) -> None:
        res = resolve_scenes(
            "waving", two_subjects=False, max_batch_size=5, random_poses=3, source=SequenceChoice([0])
        )
        assert [s.text for s in res.scenes] == ["waving"]

    def test_none_angle_leaves_scene_unprefixed(self) -> None:
        res = resolve_scenes(
            "a\nb\nc", two_subjects=False, max_batch_size=5, angles=["none", " ", " close-up "]
        )
        assert [s.render() for s in res.scenes] == ["a", "b", "close-up: c"]
