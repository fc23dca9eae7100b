from __future__ import annotations

import logging
from typing import Any

from openai import OpenAI

from ..config import Config
from ..exceptions import LLMError
from .base import SYSTEM_PROMPT, BaseDriver, error_for_status

logger = logging.getLogger(__name__)


class OpenAIDriver(BaseDriver):
    """Driver encapsulating OpenAI / OpenAI-compatible chat completions."""

    MAX_TOKENS = 1024

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        # The SDK retries on its own by default; one request per call here.
        self._client: Any = OpenAI(
            base_url=config.llm_endpoint,
            api_key=self._api_key,
            timeout=self._request_timeout,
            max_retries=0,
        )

    def _create(self, kwargs: dict[str, Any]) -> Any:
        return self._client.chat.completions.create(**kwargs)

    def invoke(self, prompt: str) -> str:
        model = self.config.model
        is_gpt5 = model.startswith("gpt-5")
        token_param = "max_completion_tokens" if is_gpt5 else "max_tokens"
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            token_param: self.MAX_TOKENS,
        }
        logger.debug(
            "openai.request model=%s token_param=%s prompt_chars=%d",
            model,
            token_param,
            len(prompt),
        )
        try:
            resp = self._create(kwargs)
        except Exception as e:  # noqa: BLE001 - SDK raises many error types
            msg = str(e)
            if (not is_gpt5) and "Unsupported parameter" in msg and "max_tokens" in msg:
                # Some servers only accept max_completion_tokens
                logger.debug("openai.retry token_param=max_completion_tokens")
                kwargs.pop("max_tokens", None)
                kwargs["max_completion_tokens"] = self.MAX_TOKENS
                try:
                    resp = self._create(kwargs)
                except Exception as retry_err:  # noqa: BLE001
                    raise _client_error(retry_err) from retry_err
            else:
                raise _client_error(e) from e

        try:
            choice0 = resp.choices[0]
        except (AttributeError, IndexError):
            raise LLMError("Missing choices in OpenAI response") from None

        content = _extract_content(getattr(choice0, "message", None))
        logger.debug(
            "openai.response finish_reason=%s chars=%d",
            getattr(choice0, "finish_reason", None),
            len(content),
        )
        return content


def _client_error(err: Exception) -> LLMError:
    # openai.APIStatusError subclasses carry status_code.
    status = getattr(err, "status_code", None)
    return error_for_status(
        status if isinstance(status, int) else None, f"OpenAI client error: {err}"
    )


def _extract_content(raw_msg: Any) -> str:
    """Return message text from a string or a list of content fragments."""
    if raw_msg is None:
        return ""
    msg_content = getattr(raw_msg, "content", "")
    if isinstance(msg_content, str):
        return msg_content
    if not isinstance(msg_content, list):
        return ""
    fragments: list[str] = []
    for part in msg_content:
        if isinstance(part, dict):
            txt = part.get("text") or part.get("content") or ""
        else:
            txt = getattr(part, "text", "") or getattr(part, "content", "")
        if txt:
            fragments.append(str(txt))
    return "".join(fragments).strip()
