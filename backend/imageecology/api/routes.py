"""Image Ecology API routes (assets, enrichment, remix, observability)."""

from __future__ import annotations

import json
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.concurrency import run_in_threadpool

from imageecology.clients.provider_selector import llm_client, provider_status, storage_client
from imageecology.coordinator import orchestrator
from imageecology.core.config import settings
from imageecology.core.errors import ImageEcologyError, PolicyRejection, ValidationError
from imageecology.core.logging import log, read_log_tail, truncate_log_file
from imageecology.core.models import RemixContext, RemixParent

router = APIRouter()

# Rate limiter instance (shared with the app in main.py)
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def _error_response(e: Exception, event: str, public_message: str) -> HTTPException:
    """Map a pipeline failure to a client-facing HTTPException.

    Validation and policy errors carry their own safe messages; anything else
    is logged in full and answered with ``public_message`` only.
    """
    if isinstance(e, ValidationError):
        log.info(f"{event}_REJECTED reason={e}")
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, PolicyRejection):
        log.warning(f"{event}_POLICY_REJECTED public_id={e.public_id} kinds={e.kinds}")
        return HTTPException(status_code=422, detail=PolicyRejection.public_message)

    log.error(
        f"{event}_FAILED {type(e).__name__}: {e}",
        exc_info=not isinstance(e, ImageEcologyError),
    )
    return HTTPException(status_code=500, detail=public_message)


async def _parse_body(request: Request, model: type[BaseModel]) -> Any:
    """Parse the JSON body manually (slowapi needs the raw Request in the signature)."""
    try:
        body_dict = json.loads(await request.body() or b"{}")
        return model.model_validate(body_dict)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid request body: malformed JSON")
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise HTTPException(status_code=400, detail=f"Invalid request body: {where} {first['msg']}".strip())


# ============================================================================
# Assets
# ============================================================================


@router.get("/cloudinary/recent")
@limiter.limit("60/minute")
def get_recent_images(
    request: Request,
    skip: int = 0,
    limit: int = 10,
    folder: str | None = None,
) -> list[dict]:
    """List stored images newest first, each with its assembled descriptor.

    Args:
        request: FastAPI request object (for rate limiting)
        skip: Number of newest assets to skip
        limit: Page size
        folder: Storage folder (defaults to the configured folder)

    Returns:
        List of asset records:
        [
            {
                "url": "https://res.cloudinary.com/...",
                "publicId": "imageEcology/abc",
                "title": "Lamp at dusk",
                "descriptor": {"subject": "...", "must_keep": [...], ...},
                ...
            },
            ...
        ]
    """
    try:
        with storage_client() as storage:
            return orchestrator.list_assets(storage, skip=skip, limit=limit, folder=folder)
    except Exception as e:
        raise _error_response(e, "LIST_ASSETS", "Failed to fetch images") from e


class UploadRequest(BaseModel):
    """Request body for uploading + enriching one image."""

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl", min_length=1)
    title: str = ""
    tags: str | list[str] | None = None
    parent_ids: Any = Field(default=None, alias="parentIds")
    community: str | None = None


@router.post("/cloudinary/upload")
@limiter.limit("20/minute")
async def upload_image(request: Request) -> dict:
    """Upload an image, run moderation and vision enrichment, store the descriptor.

    Raises:
        HTTPException: 400 invalid body, 422 moderation rejection, 500 on
            any provider or schema failure (generic message)
    """
    body = await _parse_body(request, UploadRequest)

    def run() -> dict:
        with storage_client() as storage, llm_client() as llm:
            return orchestrator.enrich_asset(
                storage,
                llm,
                body.image_url,
                title=body.title,
                tags=body.tags,
                parent_ids=body.parent_ids,
                community=body.community,
                tag_cap=settings.tag_cap,
            )

    try:
        return await run_in_threadpool(run)
    except Exception as e:
        raise _error_response(e, "UPLOAD", "Failed to upload image") from e


@router.get("/autotagallimages")
@limiter.limit("2/minute")
def autotag_all_images(request: Request) -> dict:
    """Re-run enrichment over every stored image with bounded concurrency.

    Returns:
        Dict with totals, per-asset failures (generic messages) and the
        asset records that were processed
    """
    try:
        with storage_client() as storage, llm_client() as llm:
            return orchestrator.autotag_all(
                storage,
                llm,
                limit=settings.autotag_limit,
                max_concurrency=settings.enrich_max_concurrency,
                tag_cap=settings.tag_cap,
            )
    except Exception as e:
        raise _error_response(e, "AUTOTAG", "Failed to fetch recent images") from e


# ============================================================================
# Remix
# ============================================================================


class RemixRequest(BaseModel):
    """Request body for a multi-parent remix."""

    model_config = ConfigDict(populate_by_name=True)

    parents: list[RemixParent] = Field(default_factory=list)
    adjectives: str | list[str] = ""
    communities: list[str] = Field(default_factory=list)
    trends: list[str] = Field(default_factory=list)
    extra_prompt: str = Field(default="", alias="extraPrompt")
    remix_strength: float | None = Field(default=None, alias="remixStrength", allow_inf_nan=False)
    size: Literal["1024x1024", "1792x1024", "1024x1792"] = "1024x1024"

    # legacy callers
    descriptions: list[str] = Field(default_factory=list)
    parent_ids: list[str] = Field(default_factory=list, alias="parentIds")

    def context(self) -> RemixContext:
        adjectives = self.adjectives if isinstance(self.adjectives, str) else ", ".join(self.adjectives)
        return RemixContext(
            adjectives=adjectives,
            communities=self.communities,
            trends=self.trends,
            extra_prompt=self.extra_prompt,
        )


@router.post("/generateImage")
@limiter.limit("10/minute")
async def generate_remix(request: Request) -> dict:
    """Generate a remix image from 2+ parents.

    Returns:
        Dict with:
        {
            "finalPrompt": "...",
            "plan": {"scene": "...", "must_include": [...], ...},
            "imageUrl": "https://...",
            "storedUrl": "https://res.cloudinary.com/...",
            "publicId": "imageEcology/...",
            "parentUrls": [...],
            "tags": [...]
        }

    Raises:
        HTTPException: 400 on fewer than 2 parents (before any provider
            call), 422 moderation rejection, 500 on provider/schema failure
    """
    body = await _parse_body(request, RemixRequest)
    parents = orchestrator.normalize_parents(body.parents, body.descriptions, body.parent_ids)
    if len(parents) < 2:
        log.info(f"REMIX_REJECTED parents={len(parents)}")
        raise HTTPException(status_code=400, detail="Provide at least 2 parents.")

    strength = body.remix_strength if body.remix_strength is not None else settings.default_remix_strength

    def run() -> dict:
        with llm_client() as llm:
            if not settings.persist_remixes:
                return orchestrator.remix(
                    llm, parents, body.context(), strength, body.size,
                    max_parents=settings.max_remix_parents, tag_cap=settings.tag_cap,
                )
            with storage_client() as storage:
                return orchestrator.remix(
                    llm, parents, body.context(), strength, body.size,
                    storage=storage, max_parents=settings.max_remix_parents, tag_cap=settings.tag_cap,
                )

    try:
        return await run_in_threadpool(run)
    except Exception as e:
        raise _error_response(e, "REMIX", "Failed to generate content") from e


@router.get("/generateImage")
@limiter.limit("10/minute")
def quick_generate_image(request: Request, prompt: str = "", adjectives: str = "") -> dict:
    """Expand one sentence into an image prompt and generate it (older clients)."""
    try:
        with llm_client() as llm:
            return orchestrator.quick_generate(llm, prompt, adjectives)
    except Exception as e:
        raise _error_response(e, "QUICK_GENERATE", "Failed to generate content") from e


# ============================================================================
# Health & Observability
# ============================================================================


@router.get("/healthz")
def healthz() -> dict:
    """Health check with provider configuration status (NO SECRETS)."""
    return {
        "ok": True,
        "providers": provider_status(),
        "models": {
            "vision": settings.openai_vision_model,
            "plan": settings.openai_plan_model,
            "image": settings.openai_image_model,
        },
        "folder": settings.cloudinary_folder,
    }


@router.get("/logs/tail")
@limiter.limit("60/minute")
def get_logs_tail(request: Request, lines: int = 100) -> dict:
    """Get last N lines from the service log.

    Args:
        request: FastAPI request object (for rate limiting)
        lines: Number of lines to return (default 100, max 10000)
    """
    truncate_log_file()

    max_lines = max(0, min(lines, 10000))
    try:
        tail, total = read_log_tail(max_lines)
    except OSError as e:
        log.error(f"LOG_TAIL_FAILED: {e}")
        raise HTTPException(status_code=500, detail="Failed to read logs") from e

    if total == 0:
        return {"ok": True, "logs": [], "message": "No logs yet"}
    return {"ok": True, "logs": tail, "total_lines": total, "returned_lines": len(tail)}
