from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..sampling import ChoiceSource
from .types import SceneSpec, is_set

logger = logging.getLogger(__name__)


SINGLE_SUBJECT_SCENES: tuple[str, ...] = (
    "full-body shot, in a dynamic high-kick pose",
    "medium shot, standing on a cliff edge, cape billowing in the wind",
    "over-the-shoulder shot, looking back with a mysterious air",
    "low-angle shot, raising a triumphant fist to the sky",
    "wide shot, sitting by a campfire at night, looking thoughtful",
)

TWO_SUBJECT_SCENES: tuple[str, ...] = (
    "medium shot, both subjects standing side by side, facing the camera",
    "full-body shot, the two subjects sparring, mid-strike and mid-block",
    "wide shot, both subjects walking together down a bustling city street",
    "close-up two-shot, the subjects sharing a quiet conversation",
    "low-angle shot, the subjects standing back to back, ready for a fight",
)

POSE_LIBRARY: tuple[str, ...] = (
    # Combat / Action
    "in a dynamic high-kick pose",
    "launching a powerful uppercut",
    "wielding a long wooden bo staff in a defensive stance",
    "drawing a sword from its sheath",
    "aiming a bow and arrow",
    "casting a magic spell with glowing hands",
    # Stances
    "in a graceful crane stance, balancing on one leg",
    "in a low, powerful horse stance with fists ready",
    "in a classic praying mantis style pose",
    "executing a fluid snake style movement, low to the ground",
    # Dramatic / Emotive
    "standing on a cliff edge, cape billowing in the wind",
    "looking over their shoulder with a mysterious expression",
    "raising a triumphant fist to the sky",
    "kneeling in defeat, head bowed",
    # Relaxing / Casual
    "leaning against a wall, arms crossed casually",
    "sitting by a campfire, looking thoughtful",
    "reading a book in a comfortable chair",
    "walking through a bustling city street",
)


class EmptySceneList(Exception):
    def __init__(self, message: str = "No scenes to render: the scene list is empty"):
        super().__init__(message)


@dataclass(frozen=True)
class ResolvedScenes:
    scenes: list[SceneSpec]
    truncated: bool = False
    notice: Optional[str] = None


def default_scenes(two_subjects: bool) -> list[SceneSpec]:
    table = TWO_SUBJECT_SCENES if two_subjects else SINGLE_SUBJECT_SCENES
    return [SceneSpec(text) for text in table]


def parse_scene_lines(custom_text: str) -> list[str]:
    return [line.strip() for line in custom_text.splitlines() if line.strip()]


def _with_angles(lines: list[str], angles: Sequence[Optional[str]]) -> list[SceneSpec]:
    specs = []
    for i, line in enumerate(lines):
        angle = angles[i] if i < len(angles) else None
        specs.append(SceneSpec(line, angle=angle.strip() if is_set(angle) else None))
    return specs


def draw_poses(source: ChoiceSource, k: int) -> list[SceneSpec]:
    k = max(0, min(k, len(POSE_LIBRARY)))
    return [SceneSpec(p) for p in source.sample(POSE_LIBRARY, k)]


def resolve_scenes(
    custom_text: Optional[str],
    two_subjects: bool,
    max_batch_size: int,
    angles: Sequence[Optional[str]] = (),
    random_poses: int = 0,
    source: Optional[ChoiceSource] = None,
) -> ResolvedScenes:
    """Produce the ordered scene list for one batch.

    Custom text wins over a random pose draw, which wins over the defaults.
    Only user-supplied lists produce a truncation notice.

    Raises:
        EmptySceneList: If the resolved list has no entries.
    """
    user_supplied = True
    if custom_text and not custom_text.strip():
        raise EmptySceneList("No scenes to render: every custom scene line is blank")
    if custom_text:
        scenes = _with_angles(parse_scene_lines(custom_text), angles)
        requested = len(scenes)
    elif random_poses > 0:
        if source is None:
            raise ValueError("random_poses requires a choice source")
        requested = random_poses
        scenes = draw_poses(source, min(random_poses, max_batch_size))
    else:
        user_supplied = False
        scenes = default_scenes(two_subjects)
        requested = len(scenes)

    truncated = requested > max_batch_size
    scenes = scenes[:max_batch_size]
    notice = None
    if truncated and user_supplied:
        notice = (
            f"{requested} scenes requested; only the first {max_batch_size} "
            "will be generated"
        )
        logger.warning(notice)

    if not scenes:
        raise EmptySceneList()
    return ResolvedScenes(scenes=scenes, truncated=truncated, notice=notice)
