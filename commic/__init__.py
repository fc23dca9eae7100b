"""commic - LLM-suggested conventional commit messages for Git."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "1.0.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "load_config",
    # LLM
    "LLMClient",
    # Git
    "GitRepo", "RawDiff",
    # Validation and suggestions
    "validate", "parse", "Suggestion", "SuggestionKind",
    # Generation
    "SuggestionGenerator", "GenerationResult", "GenerationState",
    # Core workflow
    "CommicWorkflow", "WorkflowResult",
    # Exceptions
    "CommicError", "GitError", "LLMError", "ConfigError", "ValidationError",
    "RateLimitError", "AuthenticationError", "GenerationTimeoutError",
    "NoValidSuggestionsError",
]


def __getattr__(name: str):
    """Lazy attribute loader to avoid importing heavy modules at package import time.

    Provider SDKs and httpx are only imported once an attribute that needs
    them is accessed.
    """
    mapping = {
        # Config
        "Config": ("commic.config", "Config"),
        "load_config": ("commic.config", "load_config"),
        # LLM
        "LLMClient": ("commic.llm", "LLMClient"),
        # Git
        "GitRepo": ("commic.git", "GitRepo"),
        "RawDiff": ("commic.git", "RawDiff"),
        # Validation and suggestions
        "validate": ("commic.validator", "validate"),
        "parse": ("commic.validator", "parse"),
        "Suggestion": ("commic.suggestions", "Suggestion"),
        "SuggestionKind": ("commic.suggestions", "SuggestionKind"),
        # Generation
        "SuggestionGenerator": ("commic.generator", "SuggestionGenerator"),
        "GenerationResult": ("commic.generator", "GenerationResult"),
        "GenerationState": ("commic.generator", "GenerationState"),
        # Core workflow
        "CommicWorkflow": ("commic.core", "CommicWorkflow"),
        "WorkflowResult": ("commic.core", "WorkflowResult"),
        # Exceptions
        "CommicError": ("commic.exceptions", "CommicError"),
        "GitError": ("commic.exceptions", "GitError"),
        "LLMError": ("commic.exceptions", "LLMError"),
        "ConfigError": ("commic.exceptions", "ConfigError"),
        "ValidationError": ("commic.exceptions", "ValidationError"),
        "RateLimitError": ("commic.exceptions", "RateLimitError"),
        "AuthenticationError": ("commic.exceptions", "AuthenticationError"),
        "GenerationTimeoutError": ("commic.exceptions", "GenerationTimeoutError"),
        "NoValidSuggestionsError": ("commic.exceptions", "NoValidSuggestionsError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'commic' has no attribute {name!r}")


if TYPE_CHECKING:
    # For type checkers and IDEs, provide direct imports
    from .config import Config, load_config
    from .llm import LLMClient
    from .git import GitRepo, RawDiff
    from .validator import validate, parse
    from .suggestions import Suggestion, SuggestionKind
    from .generator import SuggestionGenerator, GenerationResult, GenerationState
    from .core import CommicWorkflow, WorkflowResult
    from .exceptions import (
        CommicError,
        GitError,
        LLMError,
        ConfigError,
        ValidationError,
        RateLimitError,
        AuthenticationError,
        GenerationTimeoutError,
        NoValidSuggestionsError,
    )
