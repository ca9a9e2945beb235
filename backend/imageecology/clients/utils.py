"""Response helpers shared by the provider clients."""

from __future__ import annotations

import json
from typing import Any


def extract_json(text: str) -> Any:
    """Decode JSON from model message content.

    Models occasionally wrap structured output in a ```json fence even when a
    response format is requested; the fence is dropped before decoding.

    Raises:
        ValueError: If the content is not valid JSON (message carries a
            truncated preview)
    """
    content = (text or "").strip()

    if content.startswith("```"):
        body = content.split("\n")[1:]
        if body and body[-1].strip().startswith("```"):
            body = body[:-1]
        content = "\n".join(body).strip()

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON from LLM response: {e} preview={redact(content, 300)}") from e


def redact(text: str, max_length: int = 300) -> str:
    """Cut ``text`` to ``max_length`` characters for logs and error details."""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... ({len(text)} chars total)"
