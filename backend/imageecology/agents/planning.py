"""Remix plan synthesis.

Builds the instruction payload from parent descriptors and their anchors,
delegates the creative merge to the LLM under a strict JSON schema, then
re-validates the answer locally. A plan that fails validation is a
SchemaViolation; it is never repaired.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from imageecology.clients.llm_interface import LLMClient
from imageecology.clients.utils import extract_json, redact
from imageecology.core.errors import SchemaViolation, ValidationError
from imageecology.core.logging import log
from imageecology.core.models import RemixContext, RemixParent, RemixPlan, structured_output_schema

from .anchors import extract_anchors
from .rendering import clamp_strength

MIN_PARENTS = 2
MAX_PARENTS = 16

REMIX_PLAN_SCHEMA = structured_output_schema(RemixPlan, "RemixPlan")

SUMMARY_FIELDS = (
    "subject",
    "setting",
    "style",
    "medium",
    "realism",
    "lighting",
    "palette",
    "composition",
    "trend",
    "feeling",
)

PLAN_SYSTEM_PROMPT = (
    "Keep it remixy and visual. "
    "Integrate anchors naturally into the scene narrative rather than listing them."
)

PLAN_RULES = (
    "Create ONE coherent remix image prompt plan inspired by multiple parent descriptions.",
    "The output must feel like a NEW image that fuses all parents, not a literal collage of them.",
    "You may freely change composition, perspective and scale; recompose, resize, fuse and stylize elements.",
    "Every parent must contribute at least one recognizable anchor from its anchors list, "
    "woven into the scene narrative rather than listed.",
    "Choose exactly one unified medium, realism, lighting and palette even when the parents conflict.",
    "Unify everything into a single world; no grid, no split panels, no collage.",
    "No text, watermark, UI.",
)


def summarize_parent(index: int, parent: RemixParent) -> dict[str, Any]:
    """Compact per-parent context for the planning prompt."""
    d = parent.descriptor
    description = parent.description or (d.caption or d.alt_text if d else None) or ""
    summary: dict[str, Any] = {"index": index, "description": description}
    for field in SUMMARY_FIELDS:
        summary[field] = (getattr(d, field) if d else None) or ""
    summary["anchors"] = extract_anchors(d)
    return summary


def select_parents(parents: Sequence[RemixParent], limit: int = MAX_PARENTS) -> list[RemixParent]:
    """Validate the parent count and keep the first ``limit`` in order.

    Raises:
        ValidationError: If fewer than 2 parents are given
    """
    if len(parents) < MIN_PARENTS:
        raise ValidationError(f"Provide at least {MIN_PARENTS} parents.")
    if len(parents) > limit:
        log.info(f"REMIX_PARENTS_TRUNCATED given={len(parents)} kept={limit}")
    return list(parents[:limit])


def build_plan_instructions(
    summaries: Sequence[dict[str, Any]],
    context: RemixContext,
    strength: float,
) -> tuple[str, str]:
    """Return the (system, user) prompts for the planning call."""
    lines = [
        *PLAN_RULES,
        f"Remix intensity remixStrength={strength} (0 faithful -> 1 wild); scale boldness accordingly.",
        "",
        "Context tags:",
    ]
    if context.adjectives.strip():
        lines.append(f"- vibe/tags: {context.adjectives.strip()}")
    if context.communities:
        lines.append(f"- community: {', '.join(context.communities)}")
    if context.trends:
        lines.append(f"- trends: {', '.join(context.trends)}")
    if context.extra_prompt.strip():
        lines.append(f"- extra: {context.extra_prompt.strip()}")
    lines += ["", "Parent summaries:", json.dumps(list(summaries), ensure_ascii=False)]

    return PLAN_SYSTEM_PROMPT, "\n".join(lines)


def parse_plan(raw: str) -> RemixPlan:
    """Validate raw LLM output against the RemixPlan schema.

    Raises:
        SchemaViolation: On invalid JSON, missing/extra fields, wrong types or
            list lengths outside the declared bounds
    """
    try:
        data = extract_json(raw)
    except ValueError as e:
        raise SchemaViolation("RemixPlan", str(e)) from e

    if not isinstance(data, dict):
        raise SchemaViolation("RemixPlan", f"expected JSON object, got {type(data).__name__}")

    try:
        return RemixPlan.model_validate(data)
    except PydanticValidationError as e:
        raise SchemaViolation("RemixPlan", redact(str(e), 500)) from e


def synthesize_plan(
    llm: LLMClient,
    parents: Sequence[RemixParent],
    context: RemixContext,
    strength: float,
    max_parents: int = MAX_PARENTS,
) -> RemixPlan:
    """Merge 2..N parents into one validated RemixPlan.

    Args:
        llm: Provider performing the creative merge
        parents: Remix parents in caller order (truncated to ``max_parents``)
        context: Adjectives, communities, trends and extra instructions
        strength: Remix strength, clamped to [0, 1]
        max_parents: Cap on parents considered

    Raises:
        ValidationError: Fewer than 2 parents (no LLM call is made)
        SchemaViolation: LLM output does not satisfy RemixPlan
        ExternalServiceError: Provider failure
    """
    kept = select_parents(parents, max_parents)
    strength = clamp_strength(strength)
    summaries = [summarize_parent(i + 1, p) for i, p in enumerate(kept)]
    system_prompt, user_prompt = build_plan_instructions(summaries, context, strength)

    raw = llm.plan_remix(system_prompt, user_prompt, REMIX_PLAN_SCHEMA)

    try:
        plan = parse_plan(raw)
    except SchemaViolation as e:
        log.error(f"REMIX_PLAN_SCHEMA_VIOLATION parents={len(kept)}: {e.detail}")
        raise

    log.info(
        f"REMIX_PLAN_OK parents={len(kept)} strength={strength} "
        f"must_include={len(plan.must_include)} avoid={len(plan.avoid)}"
    )
    return plan
