from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..config import Config
from ..exceptions import AuthenticationError, LLMError, RateLimitError

SYSTEM_PROMPT = (
    "You write conventional commit messages. Follow the requested output "
    "format exactly and return only the commit messages."
)


def error_for_status(status: Optional[int], message: str) -> LLMError:
    """Wrap ``message`` in the ``LLMError`` subclass matching an HTTP status."""
    if status == 429:
        return RateLimitError(message)
    if status in (401, 403):
        return AuthenticationError(message)
    return LLMError(message)


class BaseDriver(ABC):
    """Abstract base for provider-specific text generation.

    Each driver encapsulates one provider's HTTP/client call patterns and
    parameter semantics. Drivers make exactly one request per call and
    surface every failure as ``LLMError``; retry policy lives with the
    caller.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self._request_timeout = float(config.request_timeout)
        self._api_key = config.resolve_api_key()

    @abstractmethod
    def invoke(self, prompt: str) -> str:
        """Send ``prompt`` and return the raw response text."""
        raise NotImplementedError
