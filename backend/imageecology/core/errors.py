"""Error kinds surfaced by the enrichment and remix pipeline.

Only structural failures propagate as these exceptions. Per-field metadata
lookups never raise; a missing or blank field simply resolves to ``None``.
"""

from __future__ import annotations


class ImageEcologyError(Exception):
    """Base class for pipeline errors."""


class ValidationError(ImageEcologyError):
    """Malformed or insufficient client input (e.g. fewer than 2 remix parents).

    The message is safe to return to the caller verbatim.
    """


class PolicyRejection(ImageEcologyError):
    """Storage provider moderation rejected the asset."""

    public_message = "image does not adhere to our policy"

    def __init__(self, public_id: str | None = None, kinds: list[str] | None = None):
        self.public_id = public_id
        self.kinds = kinds or []
        super().__init__(
            f"Moderation rejected asset public_id={public_id} kinds={','.join(self.kinds)}"
        )


class SchemaViolation(ImageEcologyError):
    """Structured LLM output did not satisfy its declared schema."""

    def __init__(self, schema_name: str, detail: str):
        self.schema_name = schema_name
        self.detail = detail
        super().__init__(f"{schema_name} schema violation: {detail}")


class ExternalServiceError(ImageEcologyError):
    """Transport, auth or quota failure from a third-party provider.

    ``detail`` is for logs only and must never be echoed to API callers.
    """

    def __init__(self, provider: str, detail: str, status_code: int | None = None):
        self.provider = provider
        self.detail = detail
        self.status_code = status_code
        status = f" HTTP {status_code}" if status_code is not None else ""
        super().__init__(f"{provider}{status}: {detail}")
