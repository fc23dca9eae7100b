import types

import httpx
import pytest

import commic.providers.openai_driver as openai_driver
from commic.config import DEFAULT_MODELS, Config, load_config
from commic.exceptions import (
    AuthenticationError,
    ConfigError,
    LLMError,
    RateLimitError,
)
from commic.llm import LLMClient, strip_code_fences
from commic.providers import (
    AnthropicDriver,
    GeminiDriver,
    OpenAIDriver,
    XAIDriver,
)


def _config(provider, **kwargs):
    defaults = DEFAULT_MODELS[provider]
    kwargs.setdefault("model", defaults["model"])
    return Config(
        provider=provider,
        llm_endpoint=defaults["endpoint"],
        api_key_env=defaults["api_key_env"],
        **kwargs,
    )


class _Resp:
    def __init__(self, status_code=200, payload=None, text="ok"):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):  # noqa: D401
        return self._payload


def _capture_post(monkeypatch, response):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None, **_kw):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(httpx, "post", fake_post)
    return calls


def _stub_openai(monkeypatch, content="feat: add feature", error=None):
    created = {}

    class _ChatCompletions:
        def __init__(self):
            self.calls = []

        def create(self, **kwargs):  # noqa: D401
            self.calls.append(kwargs)
            if error is not None and len(self.calls) == 1:
                raise error
            message = types.SimpleNamespace(content=content)
            choice = types.SimpleNamespace(message=message, finish_reason="stop")
            return types.SimpleNamespace(choices=[choice])

    completions = _ChatCompletions()

    def factory(**kwargs):
        created.update(kwargs)
        return types.SimpleNamespace(
            chat=types.SimpleNamespace(completions=completions)
        )

    monkeypatch.setattr(openai_driver, "OpenAI", factory)
    return created, completions


def test_missing_api_key_is_config_error():
    with pytest.raises(ConfigError) as ei:
        LLMClient(_config("gemini"))
    assert "GEMINI_API_KEY" in str(ei.value)


def test_unknown_provider_is_config_error(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    cfg = _config("gemini")
    cfg.provider = "mystery"

    with pytest.raises(ConfigError):
        LLMClient(cfg)


@pytest.mark.parametrize(
    "provider, driver_cls",
    [
        ("gemini", GeminiDriver),
        ("anthropic", AnthropicDriver),
        ("openai", OpenAIDriver),
        ("xai", XAIDriver),
    ],
)
def test_driver_selection(monkeypatch, provider, driver_cls):
    _stub_openai(monkeypatch)
    monkeypatch.setenv(DEFAULT_MODELS[provider]["api_key_env"], "key")

    client = LLMClient(_config(provider))

    assert type(client._driver) is driver_cls


def test_uses_active_config_when_none_given(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    load_config()

    client = LLMClient()

    assert client.provider == "gemini"


def test_gemini_request_and_response(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    payload = {
        "candidates": [
            {"content": {"parts": [{"text": "feat: a\n---\n"}, {"text": "feat: b"}]}}
        ]
    }
    calls = _capture_post(monkeypatch, _Resp(payload=payload))

    client = LLMClient(_config("gemini", request_timeout=12.0))
    text = client.generate("PROMPT")

    assert text == "feat: a\n---\nfeat: b"
    call = calls[0]
    assert call["url"] == (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.5-flash:generateContent"
    )
    assert call["headers"]["x-goog-api-key"] == "g-test"
    assert call["json"]["contents"][0]["parts"][0]["text"] == "PROMPT"
    assert call["timeout"] == 12.0


def test_gemini_http_error_carries_status_and_body(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    _capture_post(
        monkeypatch,
        _Resp(status_code=429, text='{"status": "RESOURCE_EXHAUSTED", "quota": 1}'),
    )

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("gemini")).generate("p")
    assert "Gemini error 429" in str(ei.value)
    assert "RESOURCE_EXHAUSTED" in str(ei.value)


def test_gemini_timeout_mentions_timed_out(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    _capture_post(monkeypatch, httpx.ReadTimeout("slow"))

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("gemini")).generate("p")
    assert "timed out" in str(ei.value)


def test_gemini_without_candidates_returns_empty(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    _capture_post(monkeypatch, _Resp(payload={"promptFeedback": {}}))

    assert LLMClient(_config("gemini")).generate("p") == ""


def test_anthropic_success(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "a-test")
    payload = {"content": [{"type": "text", "text": "feat(core): improve speed"}]}
    calls = _capture_post(monkeypatch, _Resp(payload=payload))

    text = LLMClient(_config("anthropic")).generate("PROMPT")

    assert text == "feat(core): improve speed"
    assert calls[0]["url"] == "https://api.anthropic.com/v1/messages"
    assert calls[0]["json"]["max_tokens"] == AnthropicDriver.MAX_TOKENS
    assert calls[0]["headers"]["x-api-key"] == "a-test"


def test_anthropic_error(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "a-test")
    _capture_post(monkeypatch, _Resp(status_code=401, text='{"error": "auth"}'))

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("anthropic")).generate("p")
    assert "Anthropic error 401" in str(ei.value)


def test_network_errors_become_llm_errors(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "a-test")

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("anthropic")).generate("p")
    assert "network error" in str(ei.value)


def test_openai_basic(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    created, completions = _stub_openai(monkeypatch, content="feat(core): add feature")

    text = LLMClient(_config("openai", model="gpt-test")).generate("PROMPT")

    assert text == "feat(core): add feature"
    assert created["api_key"] == "sk-test"
    assert created["max_retries"] == 0
    kwargs = completions.calls[0]
    assert kwargs["model"] == "gpt-test"
    assert kwargs["messages"][-1] == {"role": "user", "content": "PROMPT"}
    assert "max_tokens" in kwargs


def test_openai_gpt5_uses_max_completion_tokens(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    _, completions = _stub_openai(monkeypatch)

    LLMClient(_config("openai")).generate("p")

    assert "max_completion_tokens" in completions.calls[0]
    assert "max_tokens" not in completions.calls[0]


def test_openai_retries_with_max_completion_tokens(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    error = RuntimeError("Unsupported parameter: 'max_tokens'")
    _, completions = _stub_openai(monkeypatch, error=error)

    text = LLMClient(_config("openai", model="o-test")).generate("p")

    assert text == "feat: add feature"
    assert len(completions.calls) == 2
    assert "max_completion_tokens" in completions.calls[1]


def test_openai_client_error_is_wrapped(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    _stub_openai(monkeypatch, error=RuntimeError("Error code: 429 - quota"))

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("openai", model="gpt-test")).generate("p")
    assert "OpenAI client error" in str(ei.value)
    assert "429" in str(ei.value)


def test_openai_list_content_fragments(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    _stub_openai(
        monkeypatch,
        content=[{"text": "feat: a"}, types.SimpleNamespace(text="\n---\nfeat: b")],
    )

    assert LLMClient(_config("openai")).generate("p") == "feat: a\n---\nfeat: b"


def test_xai_uses_its_endpoint(monkeypatch):
    monkeypatch.setenv("XAI_API_KEY", "x-test")
    created, _ = _stub_openai(monkeypatch)

    LLMClient(_config("xai")).generate("p")

    assert created["base_url"] == "https://api.x.ai/v1"


def test_code_fences_are_stripped(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    _stub_openai(monkeypatch, content="```text\nfeat: a\n---\nfeat: b\n```")

    assert LLMClient(_config("openai")).generate("p") == "feat: a\n---\nfeat: b"


def test_strip_code_fences_keeps_other_lines():
    assert strip_code_fences("a\n  ```\nb") == "a\nb"
    assert strip_code_fences("") == ""


@pytest.mark.parametrize(
    "status, error_cls",
    [(429, RateLimitError), (401, AuthenticationError), (403, AuthenticationError)],
)
def test_http_status_maps_to_typed_errors(monkeypatch, status, error_cls):
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    _capture_post(monkeypatch, _Resp(status_code=status, text="denied"))

    with pytest.raises(error_cls):
        LLMClient(_config("gemini")).generate("p")


def test_server_error_stays_plain_llm_error(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "a-test")
    _capture_post(monkeypatch, _Resp(status_code=500, text="req_4291"))

    with pytest.raises(LLMError) as ei:
        LLMClient(_config("anthropic")).generate("p")
    assert type(ei.value) is LLMError


def test_openai_status_code_maps_to_typed_errors(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    class _StatusError(Exception):
        status_code = 429

    _stub_openai(monkeypatch, error=_StatusError("slow down"))

    with pytest.raises(RateLimitError):
        LLMClient(_config("openai", model="gpt-test")).generate("p")
