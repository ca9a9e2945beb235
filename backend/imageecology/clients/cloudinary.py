"""Cloudinary REST client: signed uploads, metadata updates and folder search."""

from __future__ import annotations

import hashlib
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from imageecology.core.logging import log

from .transport import HTTPTransport

PROVIDER = "cloudinary"
API_BASE = "https://api.cloudinary.com/v1_1"

# Search API page size limit
SEARCH_PAGE_MAX = 500

# Rekognition moderation: only explicit nudity and hate symbols are monitored,
# every other category is explicitly ignored.
MODERATION = (
    "aws_rek:"
    "explicit_nudity:0.7:"
    "hate_symbols:0.6:"
    "suggestive:ignore:"
    "violence:ignore:"
    "visually_disturbing:ignore:"
    "rude_gestures:ignore:"
    "drugs:ignore:"
    "tobacco:ignore:"
    "alcohol:ignore:"
    "gambling:ignore"
)
MODERATION_KIND_PREFIX = "aws_rek"

# Never part of the string to sign
UNSIGNED_PARAMS = {"file", "cloud_name", "resource_type", "api_key"}


@dataclass(frozen=True)
class CloudinaryConfig:
    """Account credentials and defaults for CloudinaryClient."""

    cloud_name: str
    api_key: str
    api_secret: str
    folder: str = "imageEcology"
    timeout_connect_s: float = 10.0
    timeout_read_s: float = 30.0


def _escape_context(text: str) -> str:
    return text.replace("\\", "\\\\").replace("=", "\\=").replace("|", "\\|")


def encode_context(context: Mapping[str, Any]) -> str:
    """Encode a context mapping as ``key=value|key=value`` with escaping."""
    pairs = []
    for key, value in context.items():
        if value is None:
            continue
        pairs.append(f"{_escape_context(str(key))}={_escape_context(str(value))}")
    return "|".join(pairs)


def sign_params(params: Mapping[str, Any], api_secret: str) -> str:
    """SHA-1 request signature over the sorted, non-empty signable params."""
    signable = []
    for key in sorted(params):
        value = params[key]
        if key in UNSIGNED_PARAMS or value is None or value == "" or value == []:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        signable.append(f"{key}={value}")
    to_sign = "&".join(signable) + api_secret
    return hashlib.sha1(to_sign.encode("utf-8")).hexdigest()


def moderation_rejections(upload_result: Mapping[str, Any]) -> list[str]:
    """Return the moderation kinds that rejected an upload (empty when clean)."""
    rejected = []
    for entry in upload_result.get("moderation") or []:
        kind = str(entry.get("kind", ""))
        if entry.get("status") == "rejected" and kind.startswith(MODERATION_KIND_PREFIX):
            rejected.append(kind)
    return rejected


class CloudinaryClient:
    """Image storage client for one Cloudinary account."""

    def __init__(self, config: CloudinaryConfig, transport: HTTPTransport | None = None):
        if not (config.cloud_name and config.api_key and config.api_secret):
            raise ValueError("Cloudinary cloud name, API key and secret are required")

        self.config = config
        self.transport = transport or HTTPTransport(
            provider=PROVIDER,
            base_url=f"{API_BASE}/{config.cloud_name}",
            auth=(config.api_key, config.api_secret),
            timeout_connect_s=config.timeout_connect_s,
            timeout_read_s=config.timeout_read_s,
        )

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {k: v for k, v in params.items() if v is not None}
        params["timestamp"] = int(time.time())
        params["signature"] = sign_params(params, self.config.api_secret)
        params["api_key"] = self.config.api_key
        return params

    def upload(
        self,
        file_url: str,
        context: Mapping[str, Any] | None = None,
        tags: list[str] | None = None,
        folder: str | None = None,
        moderate: bool = True,
    ) -> dict[str, Any]:
        """Upload a remote image by URL.

        Args:
            file_url: Source URL (or data URI) of the image
            context: Context metadata stored on the asset
            tags: Optional tags
            folder: Target folder (defaults to the configured folder)
            moderate: Request Rekognition moderation (see MODERATION)

        Returns:
            Upload response JSON (public_id, secure_url, moderation, ...)

        Raises:
            ExternalServiceError: On provider failures
        """
        params = self._signed(
            {
                "folder": folder or self.config.folder,
                "context": encode_context(context) if context else None,
                "tags": ",".join(tags) if tags else None,
                "moderation": MODERATION if moderate else None,
            }
        )
        params["file"] = file_url
        result = self.transport.post_form("image/upload", params)
        log.info(
            f"CLOUDINARY_UPLOAD public_id={result.get('public_id')} "
            f"moderation={[m.get('status') for m in result.get('moderation') or []]}"
        )
        return result

    def update_metadata(
        self,
        public_id: str,
        context: Mapping[str, Any],
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        """Replace context (and tags) on an existing upload via ``explicit``."""
        params = self._signed(
            {
                "public_id": public_id,
                "type": "upload",
                "context": encode_context(context),
                "tags": ",".join(tags) if tags else None,
            }
        )
        result = self.transport.post_form("image/explicit", params)
        log.info(f"CLOUDINARY_EXPLICIT public_id={public_id} tags={len(tags or [])}")
        return result

    def search_folder(self, folder: str | None = None, max_results: int = 10) -> list[dict[str, Any]]:
        """Newest-first resources of a folder, with context, metadata and tags.

        Pages through ``next_cursor`` until ``max_results`` resources are
        collected or the folder is exhausted.
        """
        target = folder or self.config.folder
        resources: list[dict[str, Any]] = []
        cursor: str | None = None

        while len(resources) < max_results:
            payload: dict[str, Any] = {
                "expression": f'folder="{target}"',
                "sort_by": [{"created_at": "desc"}],
                "with_field": ["context", "metadata", "tags"],
                "max_results": min(SEARCH_PAGE_MAX, max_results - len(resources)),
            }
            if cursor:
                payload["next_cursor"] = cursor

            page = self.transport.post_json("resources/search", payload)
            resources.extend(page.get("resources") or [])
            cursor = page.get("next_cursor")
            if not cursor:
                break

        log.info(f"CLOUDINARY_SEARCH folder={target} found={len(resources)}")
        return resources[:max_results]

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> CloudinaryClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
