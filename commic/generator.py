"""Retry controller turning generator output into commit suggestions.

One ``SuggestionGenerator.run`` call drives an explicit state machine::

    ATTEMPTING -> EVALUATING -> SUCCEEDED
        ^             |
        +-------------+  (shortfall, attempts remain)

    exhausted -> SUCCEEDED (degraded) | FALLBACK_USED | FAILED

Rate-limit and authentication failures end the run at once. Timeouts,
empty responses and other failures consume an attempt and retry.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol

from .config import Config
from .exceptions import (
    AuthenticationError,
    GenerationTimeoutError,
    LLMError,
    NoValidSuggestionsError,
    RateLimitError,
)
from .fallback import synthesize
from .git import RawDiff
from .parsing import clean, segment
from .prompt import build_commit_prompt
from .suggestions import (
    MAX_SUGGESTIONS,
    Suggestion,
    evaluate,
    meets_policy,
    rank_suggestions,
)
from .validator import validate

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_REQUEST_TIMEOUT = 30.0

_RATE_LIMIT_MARKERS = (
    "rate limit",
    "ratelimit",
    "quota",
    "resource_exhausted",
    "too many requests",
)
_AUTH_MARKERS = (
    "api key",
    "auth",
    "permission",
    "unauthorized",
    "forbidden",
)
_TIMEOUT_MARKERS = ("timeout", "timed out")
_RATE_LIMIT_STATUS = {429}
_AUTH_STATUS = {401, 403}

# A status code counts only right after "error", "status" or "code".
_STATUS_CODE = re.compile(
    r"\b(?:error|status|code)\s*:?\s*(\d{3})\b", re.IGNORECASE
)


class Generator(Protocol):
    """Anything that turns a prompt into raw text, e.g. ``LLMClient``."""

    def generate(self, prompt: str) -> str: ...


class GenerationState(Enum):
    ATTEMPTING = "attempting"
    EVALUATING = "evaluating"
    SUCCEEDED = "succeeded"
    FALLBACK_USED = "fallback_used"
    FAILED = "failed"


class FailureKind(Enum):
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    TIMED_OUT = "timed_out"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self in (FailureKind.TIMED_OUT, FailureKind.OTHER)


def classify_failure(error: BaseException) -> FailureKind:
    """Classify a generator failure by its type and lower-cased message.

    Rate-limit markers are checked before auth markers, so a quota error
    mentioning an API key still counts as rate limiting.
    """
    if isinstance(error, RateLimitError):
        return FailureKind.RATE_LIMITED
    if isinstance(error, AuthenticationError):
        return FailureKind.AUTH_FAILED

    text = str(error).lower()
    statuses = {int(code) for code in _STATUS_CODE.findall(text)}
    if statuses & _RATE_LIMIT_STATUS or any(
        marker in text for marker in _RATE_LIMIT_MARKERS
    ):
        return FailureKind.RATE_LIMITED
    if statuses & _AUTH_STATUS or any(marker in text for marker in _AUTH_MARKERS):
        return FailureKind.AUTH_FAILED
    if isinstance(error, (TimeoutError, FutureTimeoutError, GenerationTimeoutError)):
        return FailureKind.TIMED_OUT
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return FailureKind.TIMED_OUT
    return FailureKind.OTHER


@dataclass
class AttemptState:
    """Mutable bookkeeping for a single run; never shared between runs."""

    attempt: int = 1
    state: GenerationState = GenerationState.ATTEMPTING
    best: list[Suggestion] = field(default_factory=list)
    last_error: Optional[BaseException] = None
    last_failure: Optional[FailureKind] = None

    def record_failure(self, error: BaseException, kind: FailureKind) -> None:
        self.last_error = error
        self.last_failure = kind


@dataclass(frozen=True)
class GenerationResult:
    suggestions: tuple[Suggestion, ...]
    state: GenerationState
    attempts: int
    degraded: bool = False

    @property
    def used_fallback(self) -> bool:
        return self.state is GenerationState.FALLBACK_USED

    @property
    def messages(self) -> list[str]:
        return [s.message for s in self.suggestions]


class SuggestionGenerator:
    """Produce up to five validated commit suggestions for a diff.

    Args:
        generator: Collaborator with ``generate(prompt) -> str``.
        max_attempts: Generator calls allowed per run.
        request_timeout: Seconds to wait for each call before abandoning it.
            ``None`` waits indefinitely.
        allow_fallback: Synthesize a message from the diff when every
            attempt came back empty-handed.
        prompt_builder: Callable building the prompt from diff and
            instruction.
    """

    def __init__(
        self,
        generator: Generator,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
        allow_fallback: bool = True,
        prompt_builder: Callable[..., str] = build_commit_prompt,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._generator = generator
        self.max_attempts = max_attempts
        self.request_timeout = request_timeout
        self.allow_fallback = allow_fallback
        self._prompt_builder = prompt_builder

    @classmethod
    def from_config(cls, generator: Generator, config: Config) -> "SuggestionGenerator":
        return cls(
            generator,
            max_attempts=config.max_attempts,
            request_timeout=config.request_timeout,
            allow_fallback=config.allow_fallback,
        )

    def generate(
        self, diff: RawDiff, custom_instruction: Optional[str] = None
    ) -> list[Suggestion]:
        """Return the suggestions of :meth:`run` as a plain list."""
        return list(self.run(diff, custom_instruction).suggestions)

    def run(
        self, diff: RawDiff, custom_instruction: Optional[str] = None
    ) -> GenerationResult:
        """Drive attempts until the acceptance policy is met or attempts run out.

        Raises:
            RateLimitError: The generator reported rate limiting or quota.
            AuthenticationError: The generator rejected the credentials.
            GenerationTimeoutError: The final attempt timed out and nothing
                else was usable.
            NoValidSuggestionsError: Attempts exhausted with no usable output.
        """
        prompt = self._prompt_builder(diff, custom_instruction)
        run_state = AttemptState()

        while run_state.attempt <= self.max_attempts:
            run_state.state = GenerationState.ATTEMPTING
            logger.debug(
                "generation.attempt %d/%d", run_state.attempt, self.max_attempts
            )
            try:
                raw = self._call_with_timeout(prompt)
            except Exception as exc:  # noqa: BLE001 - generator is a black box
                kind = classify_failure(exc)
                logger.info(
                    "generation.failure attempt=%d kind=%s error=%s",
                    run_state.attempt,
                    kind.value,
                    exc,
                )
                if not kind.retryable:
                    run_state.state = GenerationState.FAILED
                    fatal = self._fatal(kind, exc)
                    if fatal is exc:
                        raise
                    raise fatal from exc
                run_state.record_failure(exc, kind)
                run_state.attempt += 1
                continue

            if not raw or not raw.strip():
                logger.info("generation.empty_response attempt=%d", run_state.attempt)
                run_state.record_failure(
                    LLMError("Empty response from generator"), FailureKind.OTHER
                )
                run_state.attempt += 1
                continue

            run_state.state = GenerationState.EVALUATING
            suggestions = evaluate(clean(segment(raw)))
            logger.debug(
                "generation.evaluated attempt=%d valid=%d",
                run_state.attempt,
                len(suggestions),
            )
            if meets_policy(suggestions):
                run_state.state = GenerationState.SUCCEEDED
                return GenerationResult(
                    suggestions=tuple(rank_suggestions(suggestions)),
                    state=run_state.state,
                    attempts=run_state.attempt,
                )
            if suggestions and len(suggestions) > len(run_state.best):
                logger.debug(
                    "generation.best_so_far %d -> %d",
                    len(run_state.best),
                    len(suggestions),
                )
                run_state.best = suggestions
            run_state.record_failure(
                NoValidSuggestionsError(
                    f"Only {len(suggestions)} acceptable suggestion(s) in response"
                ),
                FailureKind.OTHER,
            )
            run_state.attempt += 1

        return self._exhausted(diff, run_state)

    def _call_with_timeout(self, prompt: str) -> str:
        if self.request_timeout is None:
            return self._generator.generate(prompt)
        # The worker is abandoned on timeout, not cancelled.
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self._generator.generate, prompt)
            try:
                return future.result(timeout=self.request_timeout)
            except FutureTimeoutError:
                raise GenerationTimeoutError(
                    f"Generator call timed out after {self.request_timeout:g}s"
                ) from None
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def _fatal(kind: FailureKind, error: Exception) -> LLMError:
        if kind is FailureKind.RATE_LIMITED:
            if isinstance(error, RateLimitError):
                return error
            return RateLimitError(f"Generator rate limited: {error}")
        if isinstance(error, AuthenticationError):
            return error
        return AuthenticationError(f"Generator authentication failed: {error}")

    def _exhausted(self, diff: RawDiff, run_state: AttemptState) -> GenerationResult:
        attempts = run_state.attempt - 1
        if run_state.best:
            run_state.state = GenerationState.SUCCEEDED
            logger.warning(
                "generation.degraded suggestions=%d after %d attempts",
                len(run_state.best),
                attempts,
            )
            return GenerationResult(
                suggestions=tuple(run_state.best[:MAX_SUGGESTIONS]),
                state=run_state.state,
                attempts=attempts,
                degraded=True,
            )

        if self.allow_fallback:
            message = synthesize(diff)
            if message and validate(message).valid:
                run_state.state = GenerationState.FALLBACK_USED
                logger.warning("generation.fallback message=%r", message)
                return GenerationResult(
                    suggestions=(Suggestion(message=message),),
                    state=run_state.state,
                    attempts=attempts,
                )

        run_state.state = GenerationState.FAILED
        logger.warning("generation.failed attempts=%d", attempts)
        if run_state.last_failure is FailureKind.TIMED_OUT:
            raise GenerationTimeoutError(
                f"Generator timed out on all {attempts} attempt(s)"
            ) from run_state.last_error
        raise NoValidSuggestionsError(
            f"No valid suggestions could be produced after {attempts} attempt(s)"
        ) from run_state.last_error
