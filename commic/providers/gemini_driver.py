from __future__ import annotations

import logging

import httpx

from ..exceptions import LLMError
from .base import BaseDriver, error_for_status

logger = logging.getLogger(__name__)


class GeminiDriver(BaseDriver):
    """Driver handling Google Generative Language API calls (generateContent)."""

    API_VERSION = "v1beta"

    def _url(self) -> str:
        base = self.config.llm_endpoint.rstrip("/")
        return f"{base}/{self.API_VERSION}/models/{self.config.model}:generateContent"

    def invoke(self, prompt: str) -> str:
        headers = {
            "x-goog-api-key": self._api_key or "",
            "content-type": "application/json",
        }
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        logger.debug(
            "gemini.request model=%s prompt_chars=%d", self.config.model, len(prompt)
        )
        try:
            response = httpx.post(
                self._url(),
                headers=headers,
                json=payload,
                timeout=self._request_timeout,
            )
        except httpx.TimeoutException as e:
            raise LLMError(f"Gemini request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LLMError(
                f"Gemini network error during generateContent request: {e}"
            ) from e
        status = getattr(response, "status_code", 200)
        if status and int(status) >= 400:
            body = getattr(response, "text", "<no body>")
            raise error_for_status(int(status), f"Gemini error {status}: {body}")
        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"Gemini returned invalid JSON: {e}") from e

        texts = []
        candidates = data.get("candidates") or []
        if candidates:
            content = candidates[0].get("content") or {}
            for part in content.get("parts") or []:
                if isinstance(part, dict) and part.get("text"):
                    texts.append(part["text"])
        text = "".join(texts)
        logger.debug("gemini.response chars=%d", len(text))
        return text
