"""Field resolution over provider metadata stored under legacy names.

Stored assets carry the same logical field under several historical keys
(``subject``, ``aiSubject``, ``ai_subject`` ...) spread over two containers
(Cloudinary ``context.custom`` and structured ``metadata``). ``FIELD_ALIASES``
is the single table mapping each descriptor field to its candidate keys, in
priority order. ``resolve`` / ``resolve_raw`` walk that table generically.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

Container = Mapping[str, Any]


def _ai_aliases(field: str) -> tuple[str, ...]:
    """canonical, camelCase ``ai`` prefix, snake_case ``ai_`` prefix."""
    camel = "ai" + "".join(part.capitalize() for part in field.split("_"))
    return (field, camel, f"ai_{field}")


SCALAR_FIELDS = (
    "title",
    "caption",
    "alt_text",
    "subject",
    "setting",
    "medium",
    "realism",
    "lighting",
    "palette",
    "composition",
    "style",
    "so_me_type",
    "trend",
    "feeling",
)

LIST_FIELDS = ("vibe", "objects", "people", "scenes", "must_keep")

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    # bare "title"/"caption" hold the human-entered title, not the AI one
    "title": ("aiTitle", "ai_title"),
    "caption": ("aiCaption", "ai_caption"),
    "alt_text": ("alt", "altText", "alt_text"),
    **{
        f: _ai_aliases(f)
        for f in SCALAR_FIELDS
        if f not in ("title", "caption", "alt_text")
    },
    **{f: _ai_aliases(f) for f in LIST_FIELDS if f != "must_keep"},
    "must_keep": ("must_keep", "mustKeep", "aiMustKeep", "ai_must_keep"),
}

# Human-facing keys, outside the descriptor
CAPTION_KEYS = ("caption", "Caption")
STORED_TITLE_KEYS = ("title",)
DESCRIPTION_KEYS = ("description",)
COMMUNITY_KEYS = ("community",)
PARENT_ID_KEYS = ("parentIds", "parent_ids")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return str(value).strip()


def resolve_raw(containers: Sequence[Container | None], candidate_keys: Sequence[str]) -> Any:
    """Return the first present raw value, keys outer, containers inner.

    A value counts as present when its text form is non-empty after trimming.
    """
    for key in candidate_keys:
        for container in containers:
            if not container:
                continue
            value = container.get(key)
            if _as_text(value):
                return value
    return None


def resolve(containers: Sequence[Container | None], candidate_keys: Sequence[str]) -> str | None:
    """Resolve one scalar field to a non-empty trimmed string or ``None``."""
    value = resolve_raw(containers, candidate_keys)
    if value is None:
        return None
    return _as_text(value) or None


def resolve_field(containers: Sequence[Container | None], field: str) -> str | None:
    """``resolve`` using the alias table entry for a descriptor field."""
    return resolve(containers, FIELD_ALIASES[field])


def _clean(items: Sequence[Any]) -> list[str]:
    out = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            out.append(text)
    return out


def coerce_list(raw: Any) -> list[str]:
    """Normalize a list field stored as an array, a JSON array string or CSV.

    Bracket/brace-delimited strings get one JSON parse attempt; anything that
    fails to parse, or parses to something other than an array, falls back to
    comma splitting. This function never raises.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return _clean(raw)

    text = str(raw).strip()
    if not text:
        return []

    if (text.startswith("[") and text.endswith("]")) or (
        text.startswith("{") and text.endswith("}")
    ):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return _clean(parsed)

    return _clean(text.split(","))


def render_list(items: Sequence[str]) -> str:
    """Comma-joined display form of a list field."""
    return ", ".join(items)


def store_list(items: Sequence[str]) -> str:
    """JSON array storage form of a list field.

    Entries may contain commas, so the comma-joined form would not survive
    ``coerce_list``; the JSON form always does.
    """
    return json.dumps(list(items), ensure_ascii=False)


def text_or_none(value: Any) -> str | None:
    """Trimmed text form of a raw value, ``None`` when blank."""
    return _as_text(value) or None
