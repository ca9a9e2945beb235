"""Anchor selection for remix parents (must-keep items first, then objects and vibe)."""

from __future__ import annotations

from collections.abc import Iterable

from imageecology.core.models import ImageDescriptor

MAX_ANCHORS = 10
MAX_OBJECT_ANCHORS = 5


def unique_trimmed(items: Iterable[str]) -> list[str]:
    """Case-sensitive dedupe by trimmed value, first occurrence wins."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        text = (item or "").strip()
        if text and text not in seen:
            seen.add(text)
            out.append(text)
    return out


def extract_anchors(descriptor: ImageDescriptor | None) -> list[str]:
    """Terms that must stay recognizable when this image is remixed.

    Curated must-keep items come first, then up to five objects, then the
    leading vibe and the leading person. Deterministic; at most 10 entries.

    Example:
        mustKeep=["lamp"], objects=["a".."f"], vibe=["moody"]
        -> ["lamp", "a", "b", "c", "d", "e", "moody"]
    """
    if descriptor is None:
        return []

    candidates = [
        *descriptor.must_keep,
        *descriptor.objects[:MAX_OBJECT_ANCHORS],
        *descriptor.vibe[:1],
        *descriptor.people[:1],
    ]
    return unique_trimmed(candidates)[:MAX_ANCHORS]
