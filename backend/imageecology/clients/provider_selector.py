"""Provider client construction from settings.

Clients receive explicit config objects; this module is the only place that
reads provider credentials from ``settings``.
"""

from __future__ import annotations

from imageecology.core.config import Settings, settings

from .cloudinary import CloudinaryClient, CloudinaryConfig
from .llm_interface import LLMClient
from .openai import OpenAIClient, OpenAIConfig


def _guard(provider: str, **values: str | None) -> None:
    """Validates that all required credentials are present.

    Raises:
        RuntimeError: If any value is missing
    """
    missing = [name.upper() for name, value in values.items() if not value]
    if missing:
        raise RuntimeError(f"{provider} is not configured. Set {', '.join(missing)} in .env.")


def openai_config(cfg: Settings = settings) -> OpenAIConfig:
    _guard("OpenAI", openai_api_key=cfg.openai_api_key)
    return OpenAIConfig(
        api_key=cfg.openai_api_key,
        base_url=cfg.openai_base_url,
        vision_model=cfg.openai_vision_model,
        plan_model=cfg.openai_plan_model,
        prompt_model=cfg.openai_prompt_model,
        image_model=cfg.openai_image_model,
        timeout_read_s=cfg.openai_timeout_s,
    )


def cloudinary_config(cfg: Settings = settings) -> CloudinaryConfig:
    _guard(
        "Cloudinary",
        cloudinary_cloud_name=cfg.cloudinary_cloud_name,
        cloudinary_api_key=cfg.cloudinary_api_key,
        cloudinary_api_secret=cfg.cloudinary_api_secret,
    )
    return CloudinaryConfig(
        cloud_name=cfg.cloudinary_cloud_name,
        api_key=cfg.cloudinary_api_key,
        api_secret=cfg.cloudinary_api_secret,
        folder=cfg.cloudinary_folder,
        timeout_read_s=cfg.cloudinary_timeout_s,
    )


def llm_client() -> LLMClient:
    """Returns the configured LLM client.

    Raises:
        RuntimeError: If OPENAI_API_KEY is missing
    """
    return OpenAIClient(openai_config())


def storage_client() -> CloudinaryClient:
    """Returns the configured storage client.

    Raises:
        RuntimeError: If any Cloudinary credential is missing
    """
    return CloudinaryClient(cloudinary_config())


def provider_status(cfg: Settings = settings) -> dict[str, str]:
    """Configured/missing status per provider (never the secrets)."""
    cloudinary_ready = all(
        [cfg.cloudinary_cloud_name, cfg.cloudinary_api_key, cfg.cloudinary_api_secret]
    )
    return {
        "openai": "configured" if cfg.openai_api_key else "key_missing",
        "cloudinary": "configured" if cloudinary_ready else "key_missing",
    }
