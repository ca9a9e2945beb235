"""HTTP transport shared by the provider clients.

Handles:
- Session management with httpx.Client
- Connect/read timeouts (the per-call bound for fan-out batches)
- Auth and User-Agent headers
- Mapping every transport/HTTP failure to ExternalServiceError

Retries are left to the providers.
"""

from __future__ import annotations

from typing import Any

import httpx

from imageecology.core.errors import ExternalServiceError
from imageecology.core.logging import log

from .utils import redact

USER_AGENT = "image-ecology/0.1"


class HTTPTransport:
    """Thin JSON/form transport for one provider base URL."""

    def __init__(
        self,
        provider: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        timeout_connect_s: float = 10.0,
        timeout_read_s: float = 60.0,
    ):
        """
        Initialize transport layer.

        Args:
            provider: Provider name used in logs and errors (e.g. "openai")
            base_url: API base URL
            headers: Extra default headers (auth tokens etc.)
            auth: Optional HTTP basic auth pair
            timeout_connect_s: Connection timeout in seconds
            timeout_read_s: Read timeout in seconds
        """
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_read_s, connect=timeout_connect_s),
            headers={"User-Agent": USER_AGENT, **(headers or {})},
            auth=auth,
        )

    def request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            ExternalServiceError: On network errors, non-2xx responses or a
                body that is not JSON
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        log.debug(f"TRANSPORT: {method} {self.provider} {path}")

        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log.warning(f"TRANSPORT_NETWORK_ERROR provider={self.provider} path={path}: {e}")
            raise ExternalServiceError(self.provider, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            body_preview = redact(response.text or "(no body)", 500)
            log.error(
                f"TRANSPORT_HTTP_ERROR provider={self.provider} path={path} "
                f"status={response.status_code} body={body_preview}"
            )
            raise ExternalServiceError(self.provider, body_preview, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                self.provider, f"non-JSON response on {path}: {redact(response.text, 200)}"
            ) from e

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", path, json=payload)

    def post_form(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", path, data=data)

    def close(self) -> None:
        """Close the HTTP client session."""
        self.client.close()

    def __enter__(self) -> HTTPTransport:
        return self

    def __exit__(self, *args) -> None:
        self.close()
