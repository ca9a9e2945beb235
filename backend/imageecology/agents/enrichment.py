"""Vision enrichment: ask the model for a structured descriptor and validate it locally."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from imageecology.clients.llm_interface import LLMClient
from imageecology.clients.utils import extract_json, redact
from imageecology.core.errors import SchemaViolation
from imageecology.core.logging import log
from imageecology.core.models import VisionDescriptor, structured_output_schema

VISION_SCHEMA = structured_output_schema(VisionDescriptor, "ImageDescriptor")


def vision_instructions(title: str) -> str:
    """Rules for the descriptor the vision model writes for a stored image."""
    return f"""
You are describing an image for storage + remixing.
Return JSON that matches the provided schema EXACTLY.

Rules:
- "title": <= 7 words, aligned with user title "{title}" (refine if needed).
- "caption": <= 2 sentences.
- "altText": <= 15 words, neutral literal description.
- "subject": 3-10 words describing the main subject.
- "setting": concise environment description.
- "must_keep": 3-10 concrete anchors that must survive remixing (objects / wardrobe / props / defining features).
- "medium"/"realism"/"lighting"/"palette"/"composition": short, remixable phrases.
- "style": a reusable prompt-style string combining medium/realism/lighting/palette/composition succinctly.
- List entries are short phrases without commas.
- If no people, "people" must be [].
- If unknown trend, "trend" = "" (but keep the key).
""".strip()


def parse_vision(raw: str) -> VisionDescriptor:
    """Validate raw vision output against the descriptor schema.

    Raises:
        SchemaViolation: On invalid JSON or any schema mismatch
    """
    try:
        data = extract_json(raw)
    except ValueError as e:
        raise SchemaViolation("ImageDescriptor", str(e)) from e

    if not isinstance(data, dict):
        raise SchemaViolation("ImageDescriptor", f"expected JSON object, got {type(data).__name__}")

    try:
        return VisionDescriptor.model_validate(data)
    except PydanticValidationError as e:
        raise SchemaViolation("ImageDescriptor", redact(str(e), 500)) from e


def describe(llm: LLMClient, image_url: str, title: str) -> VisionDescriptor:
    """Vision call + local validation for one stored image."""
    raw = llm.describe_image(image_url, vision_instructions(title), VISION_SCHEMA)
    try:
        vision = parse_vision(raw)
    except SchemaViolation as e:
        log.error(f"VISION_SCHEMA_VIOLATION url={image_url}: {e.detail}")
        raise
    log.info(f"VISION_DESCRIBED url={image_url} must_keep={len(vision.must_keep)} tags={len(vision.tags)}")
    return vision
