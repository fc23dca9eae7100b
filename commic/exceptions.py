"""Exception hierarchy for commic."""

from __future__ import annotations

from typing import Optional


class CommicError(Exception):
    """Base exception for commic.

    ``suggestion`` carries a short hint the CLI prints under the error.
    """

    default_suggestion: Optional[str] = None

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion or self.default_suggestion


class ConfigError(CommicError):
    """Configuration is missing, corrupted or invalid."""

    default_suggestion = "Try reconfiguring with the --reconfigure flag."


class GitError(CommicError):
    """A git operation failed or the repository is unusable."""

    default_suggestion = (
        "Ensure you are in a valid Git repository or provide a correct path."
    )


class ValidationError(CommicError):
    """Generated output did not satisfy the commit message grammar."""

    default_suggestion = "This is likely an internal error. Please try again."


class LLMError(CommicError):
    """The text generator failed (retryable unless a subclass says otherwise)."""

    default_suggestion = "Check your internet connection and try again."


class RateLimitError(LLMError):
    """Provider rate limit or quota exhausted. Never retried."""

    default_suggestion = (
        "Wait a few moments before trying again, or check your API quota."
    )


class AuthenticationError(LLMError):
    """Provider rejected the credentials. Never retried."""

    default_suggestion = (
        "Your API key may be invalid or expired. Use --reconfigure to update it."
    )


class GenerationTimeoutError(LLMError):
    """The generator did not answer within the request timeout."""


class NoValidSuggestionsError(ValidationError):
    """Every attempt and the fallback failed to produce a usable message."""

    default_suggestion = (
        "Try again with different changes, or check if your diff is too large."
    )
