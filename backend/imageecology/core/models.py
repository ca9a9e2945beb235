"""Pydantic models for descriptors, remix plans and structured LLM output.

ImageDescriptor is the canonical per-image view. RemixPlan and
VisionDescriptor mirror the JSON schemas sent to the LLM and double as the
local validators for whatever the provider returns.
"""

from __future__ import annotations

import copy
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from imageecology.core.fields import coerce_list, text_or_none

OptionalText = Annotated[str | None, BeforeValidator(text_or_none)]
TextList = Annotated[list[str], BeforeValidator(coerce_list)]


class ImageDescriptor(BaseModel):
    """Canonical descriptive metadata for one image.

    Scalars are either non-empty trimmed strings or None; list entries are
    trimmed and non-empty. The validators enforce this for any input shape.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: OptionalText = None
    caption: OptionalText = None
    alt_text: OptionalText = Field(
        default=None,
        validation_alias=AliasChoices("altText", "alt_text", "alt"),
        serialization_alias="altText",
    )

    so_me_type: OptionalText = Field(
        default=None, validation_alias=AliasChoices("so_me_type", "soMeType")
    )
    trend: OptionalText = None
    feeling: OptionalText = None

    subject: OptionalText = None
    setting: OptionalText = None
    medium: OptionalText = None
    realism: OptionalText = None
    lighting: OptionalText = None
    palette: OptionalText = None
    composition: OptionalText = None
    style: OptionalText = None

    vibe: TextList = Field(default_factory=list)
    objects: TextList = Field(default_factory=list)
    people: TextList = Field(default_factory=list)
    scenes: TextList = Field(default_factory=list)
    must_keep: TextList = Field(
        default_factory=list, validation_alias=AliasChoices("must_keep", "mustKeep")
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON shape returned to API callers."""
        return self.model_dump(by_alias=True)


class VisionDescriptor(BaseModel):
    """Structured output of the enrichment (vision) call."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True, populate_by_name=True)

    title: str
    caption: str
    alt_text: str = Field(..., alias="altText")
    so_me_type: str
    trend: str
    feeling: str

    subject: str
    setting: str
    medium: str
    realism: str
    lighting: str
    palette: str
    composition: str
    style: str

    tags: list[str] = Field(..., max_length=16)
    vibe: list[str] = Field(..., max_length=10)
    objects: list[str] = Field(..., max_length=12)
    scenes: list[str] = Field(..., max_length=5)
    people: list[str] = Field(..., max_length=6)
    must_keep: list[str] = Field(..., min_length=3, max_length=10)

    def to_descriptor(self) -> ImageDescriptor:
        return ImageDescriptor.model_validate(self.model_dump(exclude={"tags"}))


class RemixPlan(BaseModel):
    """Single unified scene plan synthesized from several parents."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    scene: str
    subject: str
    setting: str
    composition: str
    medium: str
    realism: str
    lighting: str
    palette: str
    style_notes: str
    must_include: list[str] = Field(..., min_length=4, max_length=16)
    avoid: list[str] = Field(..., max_length=14)
    remix_directive: str


class RemixParent(BaseModel):
    """Source image for a remix: locator plus optional descriptor."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = ""
    descriptor: ImageDescriptor | None = None
    # free-text summary sent by legacy callers
    description: OptionalText = None

    @model_validator(mode="before")
    @classmethod
    def _lift_descriptor_description(cls, data: Any) -> Any:
        """Older clients put the free-text summary inside ``descriptor``."""
        if not isinstance(data, dict) or text_or_none(data.get("description")):
            return data
        descriptor = data.get("descriptor")
        if isinstance(descriptor, dict) and text_or_none(descriptor.get("description")):
            return {**data, "description": descriptor["description"]}
        return data


class RemixContext(BaseModel):
    """Free-text modifiers that steer a remix plan."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    adjectives: str = ""
    communities: TextList = Field(default_factory=list)
    trends: TextList = Field(default_factory=list)
    extra_prompt: str = Field(default="", alias="extraPrompt")


def _strip_titles(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _strip_titles(v) for k, v in node.items() if k != "title" or isinstance(v, dict)}
    if isinstance(node, list):
        return [_strip_titles(v) for v in node]
    return node


def structured_output_schema(model: type[BaseModel], name: str | None = None) -> dict[str, Any]:
    """Build an OpenAI ``json_schema`` response format from a pydantic model.

    Strict mode wants every property listed in ``required`` and
    ``additionalProperties: false``; pydantic's generated ``title`` keys are
    dropped.
    """
    schema = _strip_titles(copy.deepcopy(model.model_json_schema(by_alias=True)))
    schema["additionalProperties"] = False
    schema["required"] = list(schema.get("properties", {}).keys())
    return {"name": name or model.__name__, "strict": True, "schema": schema}
