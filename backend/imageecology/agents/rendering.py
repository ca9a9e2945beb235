"""Final image prompt rendering from a RemixPlan.

Pure string assembly in a fixed clause order; clauses whose inputs are empty
are dropped entirely.
"""

from __future__ import annotations

import math

from imageecology.core.models import RemixPlan
from imageecology.core.tags import dedup_casefold

HIGH_STRENGTH = 0.85
MEDIUM_STRENGTH = 0.55

STRENGTH_PHRASES = {
    "high": "Highly remixed reinterpretation, bold recomposition, surprising fusions.",
    "medium": "Creative remix reinterpretation, allow recomposition and scale shifts.",
    "low": "Light remix, subtle rearrangements and stylized integrations.",
}

UNIVERSAL_CONSTRAINTS = "No text, no watermark, no UI, no logos, no signatures."

ASPECT_DIRECTIVES = {
    "square": "Square image.",
    "landscape": "Wide landscape image.",
    "portrait": "Tall portrait image.",
}


def clamp_strength(value: float | None, default: float = 0.7) -> float:
    """Clamp remix strength into [0, 1]; None/NaN fall back to ``default``."""
    if value is None or math.isnan(value):
        value = default
    return max(0.0, min(1.0, float(value)))


def strength_tier(strength: float) -> str:
    s = clamp_strength(strength)
    if s >= HIGH_STRENGTH:
        return "high"
    if s >= MEDIUM_STRENGTH:
        return "medium"
    return "low"


def strength_phrase(strength: float) -> str:
    return STRENGTH_PHRASES[strength_tier(strength)]


def aspect_directive(size: str) -> str:
    """Orientation sentence for an OpenAI image size like ``1792x1024``."""
    try:
        width, height = (int(part) for part in size.lower().split("x", 1))
    except ValueError:
        return ASPECT_DIRECTIVES["square"]
    if width > height:
        return ASPECT_DIRECTIVES["landscape"]
    if height > width:
        return ASPECT_DIRECTIVES["portrait"]
    return ASPECT_DIRECTIVES["square"]


def _bare(text: str | None) -> str:
    return (text or "").strip().rstrip(".").strip()


def _sentences(*parts: str | None) -> str:
    """Join non-empty parts as sentences: ``"a. b."``."""
    kept = [_bare(p) for p in parts]
    return " ".join(f"{p}." for p in kept if p)


def _labeled(label: str, text: str | None) -> str:
    body = _bare(text)
    return f"{label}: {body}." if body else ""


def render_prompt(plan: RemixPlan, strength: float, size: str = "1024x1024") -> str:
    """Flatten a plan into the prompt handed to image generation.

    Clause order: scene/subject/setting, strength phrase, remix directive,
    composition, medium/realism, lighting/palette, style notes, must include,
    avoid, aspect + universal constraints.
    """
    medium, realism = _bare(plan.medium), _bare(plan.realism)
    if medium and realism:
        medium_clause = f"Medium: {medium}, realism: {realism}."
    else:
        medium_clause = _labeled("Medium", medium) or _labeled("Realism", realism)

    lighting_clause = " ".join(
        c for c in (_labeled("Lighting", plan.lighting), _labeled("Palette", plan.palette)) if c
    )

    must_include = dedup_casefold(plan.must_include)
    avoid = dedup_casefold(plan.avoid)

    clauses = [
        _sentences(plan.scene, plan.subject, plan.setting),
        strength_phrase(strength),
        _sentences(plan.remix_directive),
        _labeled("Composition", plan.composition),
        medium_clause,
        lighting_clause,
        _labeled("Style", plan.style_notes),
        _labeled("Must include", ", ".join(must_include)),
        _labeled("Avoid", ", ".join(avoid)),
        f"{aspect_directive(size)} {UNIVERSAL_CONSTRAINTS}",
    ]
    return " ".join(c for c in clauses if c)
