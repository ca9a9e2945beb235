"""Descriptor assembly from stored asset metadata, and the write-back form.

Reads go through the alias table in ``imageecology.core.fields``; writes use
the snake_case ``ai_*`` keys, which are part of every field's alias list, so
whatever is written here is read back unchanged by ``assemble``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from imageecology.core.fields import (
    CAPTION_KEYS,
    COMMUNITY_KEYS,
    DESCRIPTION_KEYS,
    FIELD_ALIASES,
    LIST_FIELDS,
    PARENT_ID_KEYS,
    SCALAR_FIELDS,
    STORED_TITLE_KEYS,
    Container,
    coerce_list,
    render_list,
    resolve,
    resolve_field,
    resolve_raw,
    store_list,
)
from imageecology.core.models import ImageDescriptor, VisionDescriptor

UNTITLED = "Untitled"


def _path_tail(public_id: str | None) -> str | None:
    if not public_id:
        return None
    tail = public_id.rstrip("/").split("/")[-1].strip()
    return tail or None


def display_title(containers: Sequence[Container | None], public_id: str | None = None) -> str:
    """Human display title: caption, stored title, storage path tail, placeholder."""
    return (
        resolve(containers, CAPTION_KEYS)
        or resolve(containers, STORED_TITLE_KEYS)
        or _path_tail(public_id)
        or UNTITLED
    )


def assemble(containers: Sequence[Container | None], public_id: str | None = None) -> ImageDescriptor:
    """Build the canonical descriptor for one asset.

    Args:
        containers: Raw metadata mappings, highest priority first
            (Cloudinary context before structured metadata)
        public_id: Storage path, used only for the title fallback

    Returns:
        ImageDescriptor; missing fields resolve to None / [] and never raise
    """
    values: dict[str, Any] = {f: resolve_field(containers, f) for f in SCALAR_FIELDS}

    for f in LIST_FIELDS:
        values[f] = coerce_list(resolve_raw(containers, FIELD_ALIASES[f]))

    if values["title"] is None:
        values["title"] = display_title(containers, public_id)
    if values["alt_text"] is None:
        values["alt_text"] = resolve(containers, DESCRIPTION_KEYS)

    return ImageDescriptor.model_validate(values)


def _secure_url(resource: Mapping[str, Any], cloud_name: str | None) -> str | None:
    if resource.get("secure_url"):
        return resource["secure_url"]
    public_id = resource.get("public_id")
    if not public_id or not cloud_name:
        return None
    resource_type = resource.get("resource_type") or "image"
    delivery_type = resource.get("type") or "upload"
    fmt = resource.get("format")
    suffix = f".{fmt}" if fmt else ""
    return f"https://res.cloudinary.com/{cloud_name}/{resource_type}/{delivery_type}/{public_id}{suffix}"


def resource_containers(resource: Mapping[str, Any]) -> list[Container]:
    """Context (custom) first, structured metadata second."""
    context = resource.get("context") or {}
    if isinstance(context, Mapping) and isinstance(context.get("custom"), Mapping):
        context = context["custom"]
    metadata = resource.get("metadata") or {}
    return [
        context if isinstance(context, Mapping) else {},
        metadata if isinstance(metadata, Mapping) else {},
    ]


def asset_record(resource: Mapping[str, Any], cloud_name: str | None = None) -> dict[str, Any]:
    """Shape one storage search resource into the list endpoint's record."""
    containers = resource_containers(resource)
    public_id = resource.get("public_id")
    descriptor = assemble(containers, public_id)

    def raw_ai(field: str) -> str | None:
        # legacy mirrors: stored string for scalars, comma-joined for lists
        keys = FIELD_ALIASES[field][1:]
        if field in LIST_FIELDS:
            return render_list(coerce_list(resolve_raw(containers, keys))) or None
        return resolve(containers, keys)

    tags = resource.get("tags")
    alt = resolve(containers, FIELD_ALIASES["alt_text"]) or resolve(containers, DESCRIPTION_KEYS)

    return {
        "url": _secure_url(resource, cloud_name),
        "publicId": public_id,
        "assetId": resource.get("asset_id"),
        "width": resource.get("width"),
        "height": resource.get("height"),
        "folder": resource.get("folder"),
        "createdAt": resource.get("created_at"),
        "tags": list(tags) if isinstance(tags, list) else [],
        "title": display_title(containers, public_id),
        "caption": resolve(containers, CAPTION_KEYS),
        "alt": alt,
        "descriptor": descriptor.to_wire(),
        "aiTitle": resolve(containers, FIELD_ALIASES["title"]),
        "aiStyle": raw_ai("style"),
        "aiTrend": raw_ai("trend"),
        "aiSoMeType": raw_ai("so_me_type"),
        "aiVibe": raw_ai("vibe"),
        "aiObjects": raw_ai("objects"),
        "aiPeople": raw_ai("people"),
        "community": resolve(containers, COMMUNITY_KEYS),
        "parentIds": resolve(containers, PARENT_ID_KEYS),
    }


def context_from_vision(
    vision: VisionDescriptor,
    caption: str | None = None,
    community: str | None = None,
    parent_ids: str | None = None,
) -> dict[str, str]:
    """Flat context mapping written back onto an enriched asset.

    ``caption`` is the human-entered title; it is only written when there is
    one, so a display fallback never gets persisted as a caption. Lists are
    stored as JSON arrays.
    """
    context = {
        "alt": vision.alt_text,
        "community": community or "",
        "parentIds": parent_ids or "",
    }
    if caption and caption.strip():
        context["caption"] = caption.strip()
    for f in SCALAR_FIELDS:
        if f == "alt_text":
            continue
        context[f"ai_{f}"] = getattr(vision, f)
    for f in LIST_FIELDS:
        context[f"ai_{f}"] = store_list(getattr(vision, f))
    return context
