"""Service configuration (provider credentials, models, limits)."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory (parent of backend/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent.resolve()

# Load .env file into environment variables
env_path = PROJECT_ROOT / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    """Image Ecology configuration. Every field maps to an upper-case env var."""

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    # OpenAI (vision descriptors, remix plans, image generation)
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_vision_model: str = "gpt-4o"
    openai_plan_model: str = "gpt-4o-mini"
    openai_prompt_model: str = "gpt-3.5-turbo"
    openai_image_model: str = "dall-e-3"
    openai_timeout_s: float = 60.0

    # Cloudinary (asset storage, moderation, metadata)
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    cloudinary_folder: str = "imageEcology"
    cloudinary_timeout_s: float = 30.0

    # Descriptor / remix behaviour
    tag_cap: int = Field(default=40, ge=1)
    max_remix_parents: int = Field(default=16, ge=2)
    default_remix_strength: float = Field(default=0.7, ge=0.0, le=1.0)
    persist_remixes: bool = True

    # Batch re-enrichment
    enrich_max_concurrency: int = Field(default=4, ge=1)
    autotag_limit: int = Field(default=1000, ge=1)

    # HTTP boundary
    rate_limit_enabled: bool = True
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )


settings = Settings()
