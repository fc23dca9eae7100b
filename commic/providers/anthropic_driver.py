from __future__ import annotations

import logging

import httpx

from ..exceptions import LLMError
from .base import SYSTEM_PROMPT, BaseDriver, error_for_status

logger = logging.getLogger(__name__)


class AnthropicDriver(BaseDriver):
    """Driver handling Anthropic API calls (messages endpoint)."""

    MAX_TOKENS = 1024

    def invoke(self, prompt: str) -> str:
        url = self.config.llm_endpoint.rstrip("/") + "/v1/messages"
        headers = {
            "x-api-key": self._api_key or "",
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        payload = {
            "model": self.config.model,
            "max_tokens": self.MAX_TOKENS,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}],
                }
            ],
            "system": SYSTEM_PROMPT,
        }
        logger.debug(
            "anthropic.request model=%s prompt_chars=%d",
            self.config.model,
            len(prompt),
        )
        try:
            response = httpx.post(
                url,
                headers=headers,
                json=payload,
                timeout=self._request_timeout,
            )
        except httpx.TimeoutException as e:
            raise LLMError(f"Anthropic request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LLMError(
                f"Anthropic network error during messages request: {e}"
            ) from e
        status = getattr(response, "status_code", 200)
        if status and int(status) >= 400:
            body = getattr(response, "text", "<no body>")
            raise error_for_status(int(status), f"Anthropic error {status}: {body}")
        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"Anthropic returned invalid JSON: {e}") from e

        text = "\n".join(
            chunk.get("text", "")
            for chunk in data.get("content") or []
            if chunk.get("type") == "text" and chunk.get("text")
        )
        logger.debug("anthropic.response chars=%d", len(text))
        return text
