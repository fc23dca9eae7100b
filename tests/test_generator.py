import time

import pytest

from commic.config import Config
from commic.exceptions import (
    AuthenticationError,
    GenerationTimeoutError,
    LLMError,
    NoValidSuggestionsError,
    RateLimitError,
)
from commic.generator import (
    AttemptState,
    FailureKind,
    GenerationState,
    SuggestionGenerator,
    classify_failure,
)
from commic.git import RawDiff
from commic.suggestions import SuggestionKind

DIFF = RawDiff.from_texts(
    "+++ b/src/fix_login.ts\n+// bug: retry count was wrong\n", ""
)

GOOD_RESPONSE = (
    "fix(auth): correct login retry count\n---\n"
    "fix(auth): handle login retries\n\nRetry three times before failing.\n---\n"
    "fix: repair login retry logic"
)


class _ScriptedGenerator:
    """Returns or raises the scripted items in order, recording prompts."""

    def __init__(self, *script):
        self.script = list(script)
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def calls(self):
        return len(self.prompts)


def _controller(generator, **kwargs):
    kwargs.setdefault("request_timeout", 5.0)
    return SuggestionGenerator(generator, **kwargs)


def test_first_attempt_success_short_circuits_and_ranks():
    gen = _ScriptedGenerator(GOOD_RESPONSE, "unused")

    result = _controller(gen).run(DIFF)

    assert gen.calls == 1
    assert result.state is GenerationState.SUCCEEDED
    assert result.attempts == 1
    assert result.degraded is False
    assert result.messages == [
        "fix(auth): correct login retry count",
        "fix: repair login retry logic",
        "fix(auth): handle login retries\n\nRetry three times before failing.",
    ]
    assert result.suggestions[-1].kind is SuggestionKind.MULTI_LINE


def test_prompt_carries_diff_and_instruction():
    gen = _ScriptedGenerator(GOOD_RESPONSE)

    _controller(gen).run(DIFF, custom_instruction="mention JIRA-42")

    assert "fix_login.ts" in gen.prompts[0]
    assert "USER INSTRUCTION:\nmention JIRA-42" in gen.prompts[0]


def test_single_candidate_on_every_attempt_returns_degraded_best_so_far():
    gen = _ScriptedGenerator(*["fix: handle nulls"] * 3)

    result = _controller(gen).run(DIFF)

    assert gen.calls == 3
    assert result.state is GenerationState.SUCCEEDED
    assert result.degraded is True
    assert result.messages == ["fix: handle nulls"]


def test_best_so_far_keeps_the_largest_set():
    two_multi = "fix: a\n\nbody a\n---\nfix: b\n\nbody b"
    gen = _ScriptedGenerator("fix: lone", two_multi, "fix: other lone")

    result = _controller(gen).run(DIFF)

    assert result.degraded is True
    assert result.messages == ["fix: a\n\nbody a", "fix: b\n\nbody b"]


def test_empty_response_is_retried():
    gen = _ScriptedGenerator("", "   \n", GOOD_RESPONSE)

    result = _controller(gen).run(DIFF)

    assert gen.calls == 3
    assert result.state is GenerationState.SUCCEEDED
    assert result.attempts == 3


def test_quota_failure_raises_rate_limit_without_retry():
    gen = _ScriptedGenerator(
        LLMError("Gemini error 429: quota exceeded"), GOOD_RESPONSE
    )

    with pytest.raises(RateLimitError):
        _controller(gen).run(DIFF)

    assert gen.calls == 1


def test_auth_failure_raises_without_retry():
    gen = _ScriptedGenerator(
        LLMError("Gemini error 403: API key not valid"), GOOD_RESPONSE
    )

    with pytest.raises(AuthenticationError):
        _controller(gen).run(DIFF)

    assert gen.calls == 1


def test_typed_rate_limit_error_is_reraised_as_is():
    error = RateLimitError("slow down")
    gen = _ScriptedGenerator(error)

    with pytest.raises(RateLimitError) as excinfo:
        _controller(gen).run(DIFF)

    assert excinfo.value is error


def test_other_failures_are_retried():
    gen = _ScriptedGenerator(
        LLMError("connection reset"), RuntimeError("boom"), GOOD_RESPONSE
    )

    result = _controller(gen).run(DIFF)

    assert gen.calls == 3
    assert result.state is GenerationState.SUCCEEDED


def test_exhaustion_without_candidates_uses_fallback():
    gen = _ScriptedGenerator("no idea", LLMError("server error 500"), "")

    result = _controller(gen).run(DIFF)

    assert result.state is GenerationState.FALLBACK_USED
    assert result.used_fallback is True
    assert result.messages == ["fix: update fix_login.ts"]
    assert result.suggestions[0].kind is SuggestionKind.SINGLE_LINE


def test_exhaustion_without_fallback_raises_no_valid_suggestions():
    gen = _ScriptedGenerator("nope", "still nope", "")

    with pytest.raises(NoValidSuggestionsError) as excinfo:
        _controller(gen, allow_fallback=False).run(DIFF)

    assert gen.calls == 3
    assert "3 attempt" in str(excinfo.value)


def test_slow_generator_times_out_and_is_retried():
    class _SlowThenFast:
        def __init__(self):
            self.calls = 0

        def generate(self, prompt):
            self.calls += 1
            if self.calls == 1:
                time.sleep(0.5)
            return GOOD_RESPONSE

    gen = _SlowThenFast()

    result = _controller(gen, request_timeout=0.05).run(DIFF)

    assert result.state is GenerationState.SUCCEEDED
    assert result.attempts == 2


def test_final_timeout_without_fallback_raises_timeout_error():
    gen = _ScriptedGenerator(
        TimeoutError("slow"), LLMError("read timed out"), TimeoutError("slow")
    )

    with pytest.raises(GenerationTimeoutError):
        _controller(gen, allow_fallback=False).run(DIFF)

    assert gen.calls == 3


def test_final_timeout_still_eligible_for_fallback():
    gen = _ScriptedGenerator(TimeoutError(), TimeoutError(), TimeoutError())

    result = _controller(gen).run(DIFF)

    assert result.used_fallback is True


def test_max_attempts_is_configurable():
    gen = _ScriptedGenerator("x", GOOD_RESPONSE)

    with pytest.raises(NoValidSuggestionsError):
        _controller(gen, max_attempts=1, allow_fallback=False).run(DIFF)

    assert gen.calls == 1


def test_invalid_max_attempts_rejected():
    with pytest.raises(ValueError):
        SuggestionGenerator(_ScriptedGenerator(), max_attempts=0)


def test_from_config_copies_limits():
    cfg = Config(
        provider="gemini",
        model="gemini-2.5-flash",
        llm_endpoint="https://generativelanguage.googleapis.com",
        api_key_env="GEMINI_API_KEY",
        max_attempts=2,
        request_timeout=12.5,
        allow_fallback=False,
    )

    controller = SuggestionGenerator.from_config(_ScriptedGenerator(), cfg)

    assert controller.max_attempts == 2
    assert controller.request_timeout == 12.5
    assert controller.allow_fallback is False


def test_generate_returns_plain_list():
    gen = _ScriptedGenerator(GOOD_RESPONSE)

    suggestions = _controller(gen).generate(DIFF)

    assert isinstance(suggestions, list)
    assert len(suggestions) == 3


@pytest.mark.parametrize(
    "error, kind",
    [
        (LLMError("Gemini error 429: RESOURCE_EXHAUSTED"), FailureKind.RATE_LIMITED),
        (LLMError("Too Many Requests"), FailureKind.RATE_LIMITED),
        (LLMError("quota exceeded for API key"), FailureKind.RATE_LIMITED),
        (LLMError("OpenAI client error: 401 Unauthorized"), FailureKind.AUTH_FAILED),
        (LLMError("permission denied"), FailureKind.AUTH_FAILED),
        (LLMError("Forbidden"), FailureKind.AUTH_FAILED),
        (TimeoutError(), FailureKind.TIMED_OUT),
        (GenerationTimeoutError("waited"), FailureKind.TIMED_OUT),
        (LLMError("Request timed out."), FailureKind.TIMED_OUT),
        (LLMError("server error 500"), FailureKind.OTHER),
        (
            LLMError("Error code: 500 - upstream failure, request id req_8f4291ab"),
            FailureKind.OTHER,
        ),
        (
            LLMError("Gemini error 503: overloaded, retry after 4030ms"),
            FailureKind.OTHER,
        ),
        (LLMError("Error code: 403 - denied"), FailureKind.AUTH_FAILED),
        (ValueError("bad json"), FailureKind.OTHER),
    ],
)
def test_classify_failure(error, kind):
    assert classify_failure(error) is kind


def test_only_timeouts_and_other_failures_are_retryable():
    assert FailureKind.TIMED_OUT.retryable
    assert FailureKind.OTHER.retryable
    assert not FailureKind.RATE_LIMITED.retryable
    assert not FailureKind.AUTH_FAILED.retryable


def test_attempt_state_starts_fresh():
    first = AttemptState()
    second = AttemptState()
    first.best.append("x")

    assert first.attempt == 1
    assert first.state is GenerationState.ATTEMPTING
    assert second.best == []


def test_status_digits_inside_ids_do_not_stop_retries():
    gen = _ScriptedGenerator(
        LLMError("OpenAI client error: Error code: 500 - request id req_8f4291ab"),
        LLMError("Gemini error 503: backend overloaded, retry after 4030ms"),
        GOOD_RESPONSE,
    )

    result = _controller(gen).run(DIFF)

    assert gen.calls == 3
    assert result.state is GenerationState.SUCCEEDED
