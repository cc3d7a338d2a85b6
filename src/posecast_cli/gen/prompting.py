from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateNotFound, UndefinedError

from .types import ImageData, ReferenceAsset, Role, SceneSpec, SessionState, StyleConfig

ORDINALS = ("first", "second", "third", "fourth")

TEMPLATES: dict[str, str] = {
    "identity_single.j2": (
        'Using the character description "{{ primary }}" and the {{ primary_ref }} '
        "reference image as the absolute ground truth for the character's appearance, "
        "redraw the character{% if modification %} depicted {{ modification }}{% endif %}. "
        "Identity preservation is the highest priority: it is absolutely crucial to "
        "maintain perfect consistency with the original character's facial features, "
        "hair, and overall identity."
    ),
    "identity_dual.j2": (
        "This image features two subjects. "
        'Subject 1 is described as "{{ primary }}"; the {{ primary_ref }} reference image '
        "is the strict ground truth for subject 1's identity. "
        'Subject 2 is described as "{{ secondary }}"; the {{ secondary_ref }} reference '
        "image is the strict ground truth for subject 2's identity. "
        "Redraw both subjects together{% if modification %}, depicted {{ modification }}{% endif %}. "
        "Identity preservation is the highest priority: keep each subject's facial "
        "features, hair, and overall identity perfectly consistent with their own "
        "reference image and never blend the two."
    ),
    "scene.j2": (
        "{% if dual %}The two subjects{% else %}The character{% endif %} must be in "
        "the following scene: '{{ scene }}'. Any camera angle or framing cues in the "
        "scene description must be rendered accurately and are a primary focus."
    ),
    "prop.j2": (
        'The scene includes a prop described as "{{ prop }}". Use the {{ prop_ref }} '
        "reference image as a strict reference for the prop's appearance."
    ),
    "background.j2": (
        'Set the scene in the environment described as "{{ background }}", using the '
        "{{ background_ref }} reference image as the strict reference for the setting, "
        "its lighting and its mood."
    ),
    "background_fallback.j2": (
        "Use a neutral, soft-focus studio background that stays consistent across the "
        "whole session, keeping {% if dual %}the subjects{% else %}the character{% endif %} "
        "as the focus."
    ),
    "expression.j2": (
        "{% if dual %}Both subjects have {{ expression }} on their faces."
        "{% else %}The character has {{ expression }} on their face.{% endif %}"
    ),
    "aspect_ratio.j2": "Compose the image for a {{ aspect_ratio }} aspect ratio.",
    "art_style.j2": (
        "{% if art_style %}The final image should be rendered in a {{ art_style }} style. "
        "This explicit style overrides any style inferred from the reference images."
        "{% else %}The art style MUST perfectly match the style of the reference "
        "image{% if dual %}s{% endif %}.{% endif %}"
    ),
}


class PromptResolutionError(Exception):
    """Raised when a prompt template cannot be resolved."""

    pass


@dataclass(frozen=True)
class CompositionContext:
    """Everything one instruction is built from.

    Optional assets are only present when they carry a descriptor.
    """

    primary: ReferenceAsset
    secondary: Optional[ReferenceAsset]
    prop: Optional[ReferenceAsset]
    background: Optional[ReferenceAsset]
    scene: SceneSpec
    expression: str
    style: StyleConfig

    @property
    def dual(self) -> bool:
        return self.secondary is not None

    def assets(self) -> list[ReferenceAsset]:
        return [a for a in (self.primary, self.secondary, self.prop, self.background) if a]

    def ref(self, role: Role) -> str:
        """Ordinal of `role` among the reference images sent with the request."""
        roles = [a.role for a in self.assets()]
        return ORDINALS[roles.index(role)]


def build_context(
    state: SessionState,
    scene: SceneSpec,
    expression: str,
    style: StyleConfig,
) -> CompositionContext:
    primary = state.described(Role.PRIMARY)
    if primary is None:
        raise PromptResolutionError("A primary reference with a descriptor is required")
    return CompositionContext(
        primary=primary,
        secondary=state.described(Role.SECONDARY),
        prop=state.described(Role.PROP),
        background=state.described(Role.BACKGROUND),
        scene=scene,
        expression=expression,
        style=style,
    )


Clause = Callable[[CompositionContext], Optional[tuple[str, dict[str, Any]]]]


def identity_clause(ctx: CompositionContext):
    params = {
        "primary": ctx.primary.descriptor,
        "primary_ref": ctx.ref(Role.PRIMARY),
        "modification": ctx.style.modification_value,
    }
    if ctx.secondary is None:
        return "identity_single.j2", params
    params["secondary"] = ctx.secondary.descriptor
    params["secondary_ref"] = ctx.ref(Role.SECONDARY)
    return "identity_dual.j2", params


def scene_clause(ctx: CompositionContext):
    return "scene.j2", {"scene": ctx.scene.render(), "dual": ctx.dual}


def prop_clause(ctx: CompositionContext):
    if ctx.prop is None:
        return None
    return "prop.j2", {"prop": ctx.prop.descriptor, "prop_ref": ctx.ref(Role.PROP)}


def background_clause(ctx: CompositionContext):
    if ctx.background is None:
        return "background_fallback.j2", {"dual": ctx.dual}
    return "background.j2", {
        "background": ctx.background.descriptor,
        "background_ref": ctx.ref(Role.BACKGROUND),
    }


def expression_clause(ctx: CompositionContext):
    return "expression.j2", {"expression": ctx.expression, "dual": ctx.dual}


def aspect_ratio_clause(ctx: CompositionContext):
    if ctx.style.aspect_ratio_value is None:
        return None
    return "aspect_ratio.j2", {"aspect_ratio": ctx.style.aspect_ratio_value}


def art_style_clause(ctx: CompositionContext):
    return "art_style.j2", {"art_style": ctx.style.art_style_value, "dual": ctx.dual}


DEFAULT_CLAUSES: tuple[Clause, ...] = (
    identity_clause,
    scene_clause,
    prop_clause,
    background_clause,
    expression_clause,
    aspect_ratio_clause,
    art_style_clause,
)


class PromptComposer:
    """Builds the composite generation instruction for one scene.

    Clauses are evaluated in order against the composition context; a clause
    returning None is skipped. Output is deterministic for fixed inputs.
    """

    def __init__(self, clauses: tuple[Clause, ...] = DEFAULT_CLAUSES):
        self.clauses = clauses
        self.env = Environment(
            loader=DictLoader(TEMPLATES),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, params: dict[str, Any]) -> str:
        """Render one clause template.

        Raises:
            PromptResolutionError: If template not found or variable undefined.
        """
        try:
            tpl = self.env.get_template(template_name)
            return tpl.render(**params).strip()
        except TemplateNotFound as e:
            raise PromptResolutionError(f"Template '{template_name}' not found") from e
        except UndefinedError as e:
            raise PromptResolutionError(
                f"Undefined variable in template '{template_name}': {e}"
            ) from e

    def compose_context(self, ctx: CompositionContext) -> str:
        parts = []
        for clause in self.clauses:
            built = clause(ctx)
            if built is None:
                continue
            text = self.render(*built)
            if text:
                parts.append(text)
        return " ".join(parts)

    def compose(
        self,
        state: SessionState,
        scene: SceneSpec,
        expression: str,
        style: Optional[StyleConfig] = None,
    ) -> str:
        return self.compose_context(build_context(state, scene, expression, style or StyleConfig()))


def compose(
    state: SessionState,
    scene: SceneSpec,
    expression: str,
    style: Optional[StyleConfig] = None,
) -> str:
    return PromptComposer().compose(state, scene, expression, style)


def request_images(state: SessionState) -> tuple[ImageData, ...]:
    """Reference images in the order the composed instruction refers to them."""
    return state.reference_images()
