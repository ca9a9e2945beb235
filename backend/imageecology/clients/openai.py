"""OpenAI REST client: structured chat completions, vision and image generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from imageecology.core.errors import ExternalServiceError
from imageecology.core.logging import log

from .llm_interface import LLMClient
from .transport import HTTPTransport
from .utils import redact

PROVIDER = "openai"


@dataclass(frozen=True)
class OpenAIConfig:
    """Connection and model settings for OpenAIClient."""

    api_key: str
    base_url: str = "https://api.openai.com/v1"
    vision_model: str = "gpt-4o"
    plan_model: str = "gpt-4o-mini"
    prompt_model: str = "gpt-3.5-turbo"
    image_model: str = "dall-e-3"
    timeout_connect_s: float = 10.0
    timeout_read_s: float = 60.0

    # Sampling per call type
    vision_temperature: float = 0.2
    vision_max_tokens: int = 500
    plan_temperature: float = 0.6
    plan_max_tokens: int = 650
    prompt_max_tokens: int = 100


PLAN_SYSTEM_PREFIX = "Return only JSON matching the schema."


class OpenAIClient(LLMClient):
    """LLMClient backed by the OpenAI chat completions and images endpoints."""

    def __init__(self, config: OpenAIConfig, transport: HTTPTransport | None = None):
        if not config.api_key:
            raise ValueError("OpenAI API key cannot be empty")

        self.config = config
        self.transport = transport or HTTPTransport(
            provider=PROVIDER,
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
            timeout_connect_s=config.timeout_connect_s,
            timeout_read_s=config.timeout_read_s,
        )

    def _chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
        max_tokens: int | None = None,
        schema: dict[str, Any] | None = None,
    ) -> str:
        """POST chat/completions and return the first message content.

        Raises:
            ExternalServiceError: On transport failures, refusals or a
                response without message content
        """
        payload: dict[str, Any] = {"model": model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if schema is not None:
            payload["response_format"] = {"type": "json_schema", "json_schema": schema}

        log.info(
            f"OPENAI_CHAT model={model} temp={temperature} "
            f"schema={schema.get('name') if schema else 'none'}"
        )
        response = self.transport.post_json("chat/completions", payload)

        try:
            message = response["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(
                PROVIDER, f"malformed chat response: {redact(str(response), 200)}"
            ) from e

        if message.get("refusal"):
            raise ExternalServiceError(PROVIDER, f"model refused: {redact(message['refusal'], 200)}")

        content = message.get("content")
        if not content:
            raise ExternalServiceError(PROVIDER, "empty chat response content")

        log.debug(f"OPENAI_RESPONSE preview={redact(content, 200)}")
        return content.strip()

    def describe_image(self, image_url: str, instructions: str, schema: dict[str, Any]) -> str:
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": instructions},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        return self._chat(
            self.config.vision_model,
            messages,
            temperature=self.config.vision_temperature,
            max_tokens=self.config.vision_max_tokens,
            schema=schema,
        )

    def plan_remix(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> str:
        messages = [
            {"role": "system", "content": f"{PLAN_SYSTEM_PREFIX} {system_prompt}".strip()},
            {"role": "user", "content": user_prompt},
        ]
        return self._chat(
            self.config.plan_model,
            messages,
            temperature=self.config.plan_temperature,
            max_tokens=self.config.plan_max_tokens,
            schema=schema,
        )

    def write_prompt(self, instructions: str) -> str:
        return self._chat(
            self.config.prompt_model,
            [{"role": "user", "content": instructions}],
            max_tokens=self.config.prompt_max_tokens,
        )

    def generate_image(self, prompt: str, size: str = "1024x1024") -> str | None:
        log.info(f"OPENAI_IMAGE model={self.config.image_model} size={size} prompt_len={len(prompt)}")
        response = self.transport.post_json(
            "images/generations",
            {"model": self.config.image_model, "prompt": prompt, "n": 1, "size": size},
        )
        data = response.get("data") or []
        if not data:
            raise ExternalServiceError(PROVIDER, "image response contained no data")
        return data[0].get("url")

    def close(self) -> None:
        self.transport.close()
