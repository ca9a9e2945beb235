"""Abstract LLM interface (provider-agnostic)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class LLMClient(ABC):
    """Abstract base class for the vision/plan/image provider.

    Methods return raw provider content. Schema validation of structured
    output happens in the agents, so any implementation (including test
    fakes) gets the same SchemaViolation handling.
    """

    @abstractmethod
    def describe_image(self, image_url: str, instructions: str, schema: dict[str, Any]) -> str:
        """Run a vision call constrained to ``schema``.

        Args:
            image_url: Publicly reachable URL of the stored image
            instructions: Natural-language rules for the descriptor
            schema: OpenAI ``json_schema`` response format

        Returns:
            Raw JSON string produced by the model

        Raises:
            ExternalServiceError: On provider failures
        """

    @abstractmethod
    def plan_remix(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> str:
        """Ask for a remix plan constrained to ``schema``; returns raw JSON text.

        Raises:
            ExternalServiceError: On provider failures
        """

    @abstractmethod
    def write_prompt(self, instructions: str) -> str:
        """Free-form completion returning a single image prompt."""

    @abstractmethod
    def generate_image(self, prompt: str, size: str = "1024x1024") -> str | None:
        """Generate one image and return its temporary URL (None if absent).

        Raises:
            ExternalServiceError: On provider failures
        """

    def close(self) -> None:
        """Close client resources (optional, override if needed)."""
        pass

    def __enter__(self) -> LLMClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
