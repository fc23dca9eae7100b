"""Provider drivers for commic."""

from .anthropic_driver import AnthropicDriver
from .base import BaseDriver
from .gemini_driver import GeminiDriver
from .openai_driver import OpenAIDriver
from .xai_driver import XAIDriver

__all__ = [
    "AnthropicDriver",
    "BaseDriver",
    "GeminiDriver",
    "OpenAIDriver",
    "XAIDriver",
]
