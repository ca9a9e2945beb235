"""Tag merging: casefold dedupe and the capped tag list written on enrichment."""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_TAG_CAP = 40


def dedup_casefold(items: Iterable[str | None]) -> list[str]:
    """Trim, drop empties, dedupe case-insensitively keeping the first casing."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        text = (item or "").strip()
        key = text.lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(text)
    return out


def merge_tags(lists: Iterable[Iterable[str | None]], cap: int = DEFAULT_TAG_CAP) -> list[str]:
    """Flatten tag lists in argument order into one deduplicated, capped tag set.

    Args:
        lists: Tag lists, highest priority first
        cap: Maximum number of tags kept

    Returns:
        Ordered tags, first-seen casing wins

    Example:
        >>> merge_tags([["Cat", "cat", "Dog"], ["dog", "Bird"]])
        ['Cat', 'Dog', 'Bird']
    """
    flat = (tag for tags in lists for tag in tags)
    return dedup_casefold(flat)[: max(cap, 0)]
