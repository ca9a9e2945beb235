"""Provider clients.

Exports:
    LLMClient: Abstract vision/plan/image provider
    OpenAIClient, OpenAIConfig: OpenAI implementation
    CloudinaryClient, CloudinaryConfig: Asset storage
"""

from .cloudinary import CloudinaryClient, CloudinaryConfig
from .llm_interface import LLMClient
from .openai import OpenAIClient, OpenAIConfig

__all__ = ["CloudinaryClient", "CloudinaryConfig", "LLMClient", "OpenAIClient", "OpenAIConfig"]
