"""Configuration management for commic."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".commic"
CONFIG_FILE_NAME = "config.json"
CONFIG_HOME_ENV = "COMMIC_CONFIG_HOME"
CONFIG_VERSION = "1.0.0"

DEFAULT_PROVIDER = "gemini"

DEFAULT_MODELS = {
    "gemini": {
        "model": "gemini-2.5-flash",
        "endpoint": "https://generativelanguage.googleapis.com",
        "api_key_env": "GEMINI_API_KEY",
    },
    "openai": {
        "model": "gpt-5-mini-2025-08-07",
        "endpoint": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "anthropic": {
        "model": "claude-3-5-haiku-latest",
        "endpoint": "https://api.anthropic.com",
        "api_key_env": "ANTHROPIC_API_KEY",
    },
    "xai": {
        "model": "grok-code-fast",
        "endpoint": "https://api.x.ai/v1",
        "api_key_env": "XAI_API_KEY",
    },
}

_FUZZY_ENV_HINTS = {
    "gemini": ["GEMINI", "GOOGLE_API_KEY", "GOOGLE_GENAI"],
    "openai": ["OPENAI", "OPENAI_API", "OA_KEY"],
    "anthropic": ["ANTHROPIC", "CLAUDE"],
    "xai": ["XAI", "GROK"],
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Runtime configuration for commic."""

    provider: str
    model: str
    llm_endpoint: str
    api_key_env: str
    git_repo_path: str = "."
    max_attempts: int = 3
    request_timeout: float = 30.0
    allow_fallback: bool = True
    version: str = CONFIG_VERSION

    def resolve_api_key(self) -> Optional[str]:
        """Return the API key from the configured environment variable."""
        return os.environ.get(self.api_key_env)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration to a dict for persistence."""
        return asdict(self)


_CONFIG_STATE: Dict[str, Optional[Config]] = {"active": None}


def config_dir() -> Path:
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override).expanduser().resolve(strict=False)
    return Path.home() / CONFIG_DIR_NAME


def config_file() -> Path:
    return config_dir() / CONFIG_FILE_NAME


def _corrupted(path: Path) -> ConfigError:
    return ConfigError(
        f"Configuration file is corrupted: {path}",
        'Run "commic --reconfigure" to recreate it.',
    )


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Persist configuration JSON, stamped with the current version."""
    cfg_path = path or config_file()
    config.version = CONFIG_VERSION
    try:
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.write_text(json.dumps(config.to_dict(), indent=2))
    except OSError as exc:
        raise ConfigError(f"Failed to save configuration: {exc}") from exc
    logger.debug("config.saved path=%s", cfg_path)
    return cfg_path


def load_persisted_config(path: Optional[Path] = None) -> Optional[Config]:
    """Read the persisted config, or None when there is none yet.

    Raises:
        ConfigError: If the file is not valid JSON or lacks provider/model.
    """
    cfg_path = path or config_file()
    if not cfg_path.exists():
        return None
    try:
        data = json.loads(cfg_path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise _corrupted(cfg_path) from exc
    if not isinstance(data, dict) or not data.get("provider") or not data.get("model"):
        raise _corrupted(cfg_path)

    provider = data["provider"]
    defaults = DEFAULT_MODELS.get(provider, DEFAULT_MODELS[DEFAULT_PROVIDER])
    data.setdefault("llm_endpoint", defaults["endpoint"])
    data.setdefault("api_key_env", defaults["api_key_env"])
    # Unknown keys from older or newer versions are ignored
    known = {f.name for f in fields(Config)}
    try:
        return Config(**{k: v for k, v in data.items() if k in known})
    except TypeError as exc:
        raise _corrupted(cfg_path) from exc


def detect_available_providers(
    env: Optional[Dict[str, str]] = None,
) -> Dict[str, List[str]]:
    """Return mapping of provider -> matching env vars found."""
    env_dict: Dict[str, str] = dict(env or os.environ)
    detected: Dict[str, List[str]] = {p: [] for p in DEFAULT_MODELS}
    for provider, defaults in DEFAULT_MODELS.items():
        key_name = defaults["api_key_env"]
        if env_dict.get(key_name):
            detected[provider].append(key_name)
        hints = _FUZZY_ENV_HINTS.get(provider, [])
        for env_key, value in env_dict.items():
            if env_key in detected[provider] or not value:
                continue
            for hint in hints:
                if hint.lower() in env_key.lower():
                    detected[provider].append(env_key)
                    break
    return detected


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(*, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Build configuration from overrides, environment, config file and defaults."""

    overrides = overrides or {}
    persisted = load_persisted_config()

    provider = (
        overrides.get("provider")
        or os.environ.get("COMMIC_PROVIDER")
        or (persisted.provider if persisted else None)
        or _auto_select_provider()
    )
    if provider not in DEFAULT_MODELS:
        raise ConfigError(
            f"Unknown provider: {provider}",
            "Choose one of: " + ", ".join(DEFAULT_MODELS),
        )
    defaults = DEFAULT_MODELS[provider]

    # Only reuse persisted provider settings when the provider is unchanged.
    same_provider = persisted is not None and persisted.provider == provider

    model = (
        overrides.get("model")
        or os.environ.get("COMMIC_MODEL")
        or (persisted.model if same_provider else None)
        or defaults["model"]
    )
    endpoint = (
        overrides.get("endpoint")
        or os.environ.get("COMMIC_LLM_ENDPOINT")
        or (persisted.llm_endpoint if same_provider else None)
        or defaults["endpoint"]
    )
    api_key_env = (
        overrides.get("api_key_env")
        or (persisted.api_key_env if same_provider else None)
        or _select_env_var_for_provider(provider)
    )
    git_repo_path = str(
        overrides.get("repo_path")
        or (persisted.git_repo_path if persisted else ".")
    )

    try:
        max_attempts = int(
            overrides.get("max_attempts")
            or os.environ.get("COMMIC_MAX_ATTEMPTS")
            or (persisted.max_attempts if persisted else 3)
        )
        request_timeout = float(
            overrides.get("request_timeout")
            or os.environ.get("COMMIC_REQUEST_TIMEOUT")
            or (persisted.request_timeout if persisted else 30.0)
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid numeric configuration value: {exc}") from exc
    if max_attempts < 1:
        raise ConfigError("max_attempts must be at least 1")
    if request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")

    fallback_env = os.environ.get("COMMIC_ALLOW_FALLBACK")
    if overrides.get("allow_fallback") is not None:
        allow_fallback = _parse_bool(overrides["allow_fallback"])
    elif fallback_env:
        allow_fallback = _parse_bool(fallback_env)
    elif persisted is not None:
        allow_fallback = bool(persisted.allow_fallback)
    else:
        allow_fallback = True

    config = Config(
        provider=provider,
        model=model,
        llm_endpoint=endpoint,
        api_key_env=api_key_env or defaults["api_key_env"],
        git_repo_path=git_repo_path,
        max_attempts=max_attempts,
        request_timeout=request_timeout,
        allow_fallback=allow_fallback,
    )
    logger.debug(
        "config.loaded provider=%s model=%s persisted=%s",
        config.provider,
        config.model,
        persisted is not None,
    )

    set_active_config(config)
    return config


def _select_env_var_for_provider(provider: str) -> Optional[str]:
    defaults = DEFAULT_MODELS[provider]["api_key_env"]
    env_matches = detect_available_providers().get(provider, [])
    if defaults in env_matches:
        return defaults
    return env_matches[0] if env_matches else defaults


def _auto_select_provider(
    detected: Optional[Dict[str, List[str]]] = None,
) -> str:
    if detected is None:
        detected = detect_available_providers()
    for provider in ("gemini", "openai", "anthropic", "xai"):
        if detected.get(provider):
            return provider
    return DEFAULT_PROVIDER


def set_active_config(config: Config) -> None:
    _CONFIG_STATE["active"] = config


def get_active_config() -> Config:
    active = _CONFIG_STATE.get("active")
    if active is None:
        return load_config()
    return active


def clear_active_config() -> None:
    _CONFIG_STATE["active"] = None


def describe_provider(provider: str) -> str:
    meta = DEFAULT_MODELS.get(provider)
    if not meta:
        return provider
    return f"{provider} (default model: {meta['model']})"
