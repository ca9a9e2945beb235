"""Service operations: list, enrich, batch re-enrich, remix, quick generate.

Every operation receives its provider clients explicitly, so the whole flow
runs against fakes in tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from imageecology.agents import descriptor as descriptors
from imageecology.agents.enrichment import describe
from imageecology.agents.planning import MAX_PARENTS, select_parents, synthesize_plan
from imageecology.agents.rendering import clamp_strength, render_prompt
from imageecology.clients.cloudinary import CloudinaryClient, moderation_rejections
from imageecology.clients.llm_interface import LLMClient
from imageecology.core.concurrency import bounded_map
from imageecology.core.errors import PolicyRejection
from imageecology.core.fields import coerce_list, store_list
from imageecology.core.logging import log
from imageecology.core.models import RemixContext, RemixParent, RemixPlan
from imageecology.core.tags import DEFAULT_TAG_CAP, merge_tags

QUICK_STYLE_SUFFIX = (
    "the image should be in the style of medieval drawings, fantasy, post-internet graphics and sci-fi. "
    "the image is not allowed to show any caption or UI element."
)


def _parent_ids_text(parent_ids: Any) -> str | None:
    if parent_ids is None:
        return None
    if isinstance(parent_ids, (list, tuple)):
        return ",".join(str(p) for p in parent_ids)
    return str(parent_ids)


def _check_moderation(upload: dict[str, Any]) -> None:
    rejected = moderation_rejections(upload)
    if rejected:
        log.warning(f"MODERATION_REJECTED public_id={upload.get('public_id')} kinds={rejected}")
        raise PolicyRejection(upload.get("public_id"), rejected)


def list_assets(
    storage: CloudinaryClient,
    skip: int = 0,
    limit: int = 10,
    folder: str | None = None,
) -> list[dict[str, Any]]:
    """Newest-first asset records of a folder, paginated by skip/limit."""
    skip, limit = max(skip, 0), max(limit, 0)
    if limit == 0:
        return []
    resources = storage.search_folder(folder, max_results=skip + limit)
    cloud_name = storage.config.cloud_name
    return [descriptors.asset_record(r, cloud_name) for r in resources[skip : skip + limit]]


def enrich_asset(
    storage: CloudinaryClient,
    llm: LLMClient,
    image_url: str,
    title: str = "",
    tags: str | Sequence[str] | None = None,
    parent_ids: Any = None,
    community: str | None = None,
    tag_cap: int = DEFAULT_TAG_CAP,
) -> dict[str, Any]:
    """Upload an image, describe it and store the descriptor on the asset.

    Raises:
        PolicyRejection: Moderation rejected the upload (no vision call made)
        SchemaViolation: Vision output failed validation
        ExternalServiceError: Storage or LLM failure
    """
    parent_ids_text = _parent_ids_text(parent_ids)
    upload = storage.upload(
        image_url,
        context={
            "alt": title,
            "caption": title,
            "parentIds": parent_ids_text or "",
            "community": community or "",
        },
    )
    _check_moderation(upload)

    public_id = upload["public_id"]
    secure_url = upload.get("secure_url") or image_url

    vision = describe(llm, secure_url, title)
    merged_tags = merge_tags(
        [vision.tags, vision.vibe, vision.objects, vision.must_keep, coerce_list(tags)],
        cap=tag_cap,
    )
    context = descriptors.context_from_vision(vision, title, community, parent_ids_text)
    storage.update_metadata(public_id, context, merged_tags)

    log.info(f"ENRICHED public_id={public_id} tags={len(merged_tags)}")
    return {
        "url": secure_url,
        "publicId": public_id,
        "title": title,
        "ai": vision.model_dump(by_alias=True),
        "descriptor": descriptors.assemble([context], public_id).to_wire(),
        "tags": merged_tags,
        "parentIds": parent_ids,
        "community": community,
    }


def reenrich_record(
    storage: CloudinaryClient,
    llm: LLMClient,
    record: dict[str, Any],
    tag_cap: int = DEFAULT_TAG_CAP,
) -> dict[str, Any]:
    """Describe an already stored asset again and update it in place."""
    vision = describe(llm, record["url"], record["title"])
    merged_tags = merge_tags(
        [vision.tags, vision.vibe, vision.objects, vision.must_keep, record.get("tags") or []],
        cap=tag_cap,
    )
    context = descriptors.context_from_vision(
        vision, record.get("caption"), record.get("community"), record.get("parentIds")
    )
    storage.update_metadata(record["publicId"], context, merged_tags)
    return {"publicId": record["publicId"], "tags": merged_tags}


def autotag_all(
    storage: CloudinaryClient,
    llm: LLMClient,
    limit: int = 1000,
    max_concurrency: int = 4,
    tag_cap: int = DEFAULT_TAG_CAP,
) -> dict[str, Any]:
    """Re-enrich up to ``limit`` stored assets with bounded concurrency.

    Failures are collected per asset; siblings keep running.
    """
    records = [r for r in list_assets(storage, 0, limit) if r.get("url") and r.get("publicId")]
    log.info(f"AUTOTAG_START assets={len(records)} max_concurrency={max_concurrency}")

    outcomes = bounded_map(
        lambda record: reenrich_record(storage, llm, record, tag_cap),
        records,
        max_concurrency=max_concurrency,
    )

    failed = []
    for outcome in outcomes:
        if outcome.ok:
            continue
        public_id = outcome.item["publicId"]
        log.error(f"AUTOTAG_ITEM_FAILED public_id={public_id}: {type(outcome.error).__name__}: {outcome.error}")
        failed.append({"publicId": public_id, "error": "Failed to enrich image"})

    log.info(f"AUTOTAG_DONE enriched={len(outcomes) - len(failed)} failed={len(failed)}")
    return {
        "ok": True,
        "total": len(records),
        "enriched": len(outcomes) - len(failed),
        "failed": failed,
        "items": records,
    }


def normalize_parents(
    parents: Sequence[RemixParent],
    descriptions: Sequence[str] = (),
    parent_ids: Sequence[str] = (),
) -> list[RemixParent]:
    """Accept legacy callers that send free-text ``descriptions`` instead of parents."""
    if len(parents) >= 2 or not descriptions:
        return list(parents)
    return [
        RemixParent(url=parent_ids[i] if i < len(parent_ids) else "", description=d)
        for i, d in enumerate(descriptions)
    ]


def persist_remix(
    storage: CloudinaryClient,
    image_url: str,
    plan: RemixPlan,
    parents: Sequence[RemixParent],
    context: RemixContext,
    tags: list[str],
) -> dict[str, Any]:
    """Upload a generated remix with its plan stored as descriptor metadata.

    Raises:
        PolicyRejection: Moderation rejected the generated image
    """
    stored_context = {
        "caption": plan.subject,
        "alt": plan.scene,
        "parentIds": ",".join(p.url for p in parents if p.url),
        "community": ", ".join(context.communities),
        "ai_caption": plan.scene,
        "ai_subject": plan.subject,
        "ai_setting": plan.setting,
        "ai_medium": plan.medium,
        "ai_realism": plan.realism,
        "ai_lighting": plan.lighting,
        "ai_palette": plan.palette,
        "ai_composition": plan.composition,
        "ai_style": plan.style_notes,
        "ai_trend": ", ".join(context.trends),
        "ai_must_keep": store_list(plan.must_include),
    }
    upload = storage.upload(image_url, context=stored_context, tags=tags)
    _check_moderation(upload)
    return upload


def remix(
    llm: LLMClient,
    parents: Sequence[RemixParent],
    context: RemixContext,
    strength: float | None = None,
    size: str = "1024x1024",
    storage: CloudinaryClient | None = None,
    max_parents: int = MAX_PARENTS,
    tag_cap: int = DEFAULT_TAG_CAP,
) -> dict[str, Any]:
    """Plan, render and generate one remix image from 2+ parents.

    Args:
        llm: Provider for planning and image generation
        parents: Remix parents (at least 2)
        context: Adjectives, communities, trends, extra instructions
        strength: Remix strength, clamped to [0, 1]
        size: Image size passed to generation
        storage: When given, the generated image is uploaded there
        max_parents: Cap on parents considered
        tag_cap: Cap on stored tags

    Raises:
        ValidationError: Fewer than 2 parents; raised before any provider call
        SchemaViolation: Plan failed validation
        PolicyRejection: Stored result rejected by moderation
        ExternalServiceError: Provider failure
    """
    kept = select_parents(parents, max_parents)
    strength = clamp_strength(strength)

    plan = synthesize_plan(llm, kept, context, strength, max_parents)
    final_prompt = render_prompt(plan, strength, size)
    log.info(f"REMIX_PROMPT_RENDERED len={len(final_prompt)} strength={strength} size={size}")

    image_url = llm.generate_image(final_prompt, size)
    tags = merge_tags([plan.must_include, context.communities, context.trends], cap=tag_cap)

    stored: dict[str, Any] = {}
    if storage is not None and image_url:
        stored = persist_remix(storage, image_url, plan, kept, context, tags)
        log.info(f"REMIX_STORED public_id={stored.get('public_id')}")

    return {
        "finalPrompt": final_prompt,
        "remixedPrompt": final_prompt,
        "plan": plan.model_dump(),
        "imageUrl": image_url,
        "storedUrl": stored.get("secure_url"),
        "publicId": stored.get("public_id"),
        "parentUrls": [p.url for p in kept if p.url],
        "tags": tags,
    }


def quick_generate(llm: LLMClient, prompt: str, adjectives: str = "") -> dict[str, Any]:
    """Single-sentence prompt expansion + image, kept for older clients."""
    instructions = (
        "pretend that you are an image prompt engineer that is trying to produce social media content. "
        f"We need to write an image prompt that expands on and depicts the following sentence: There is... {prompt}. "
        f"The image should fit this vibe: {adjectives} and be in the style of medieval drawings "
        "or post-internet graphics and sci-fi, please output an image prompt in english"
    )
    sentence = llm.write_prompt(instructions).replace('"', "").strip()
    image_url = llm.generate_image(f"{sentence}\n{QUICK_STYLE_SUFFIX}".strip(), "1024x1024")
    log.info(f"QUICK_GENERATE prompt_len={len(sentence)}")
    return {
        "prompt": prompt,
        "remixedPrompt": sentence,
        "imageUrl": image_url,
        "tags": adjectives,
    }
