"""LLM integration for commic.

``LLMClient`` picks a provider driver from the configuration and exposes a
single ``generate(prompt)`` call returning raw response text. Markdown code
fence lines are removed from the response; everything else is left for the
response parser.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import Config, get_active_config
from .exceptions import ConfigError
from .providers.anthropic_driver import AnthropicDriver
from .providers.base import BaseDriver
from .providers.gemini_driver import GeminiDriver
from .providers.openai_driver import OpenAIDriver
from .providers.xai_driver import XAIDriver

logger = logging.getLogger(__name__)

DRIVERS: dict[str, type[BaseDriver]] = {
    "gemini": GeminiDriver,
    "openai": OpenAIDriver,
    "anthropic": AnthropicDriver,
    "xai": XAIDriver,
}


def strip_code_fences(text: str) -> str:
    """Drop lines that open or close a markdown code fence."""
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines)


class LLMClient:
    """Provider-aware client returning raw text for a prompt."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or get_active_config()
        self.provider = self.config.provider
        self.model = self.config.model

        driver_cls = DRIVERS.get(self.provider)
        if driver_cls is None:
            raise ConfigError(
                f"Unsupported provider: {self.provider}",
                "Choose one of: " + ", ".join(DRIVERS),
            )

        if not self.config.resolve_api_key():
            raise ConfigError(
                "Environment variable '"
                f"{self.config.api_key_env}"
                "' is not set or empty.",
                f"Export {self.config.api_key_env} with your {self.provider} "
                'API key, or run "commic --reconfigure".',
            )

        self._driver: BaseDriver = driver_cls(self.config)
        logger.debug(
            "llm.init provider=%s model=%s timeout=%s",
            self.provider,
            self.model,
            self.config.request_timeout,
        )

    def generate(self, prompt: str) -> str:
        raw = self._driver.invoke(prompt)
        return strip_code_fences(raw or "")
