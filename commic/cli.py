"""Command-line interface for commic."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Optional, Sequence

from . import __version__
from .config import (
    DEFAULT_MODELS,
    Config,
    describe_provider,
    load_config,
    save_config,
)
from .core import BOLD, CYAN, DIM, GREEN, RED, RESET, YELLOW, CommicWorkflow
from .exceptions import CommicError, ConfigError
from .suggestions import Suggestion, SuggestionKind

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}


def configure_logging(debug: bool = False) -> None:
    """Route log records to stderr; DEBUG with ``--debug`` or COMMIC_DEBUG."""
    env_debug = os.environ.get("COMMIC_DEBUG", "").lower() in _TRUTHY
    level = logging.DEBUG if (debug or env_debug) else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _kind_label(suggestion: Suggestion) -> str:
    if suggestion.kind is SuggestionKind.SINGLE_LINE:
        return "single-line"
    return "multi-line"


def print_suggestions(suggestions: Sequence[Suggestion]) -> None:
    for idx, suggestion in enumerate(suggestions, start=1):
        lines = suggestion.message.split("\n")
        label = _kind_label(suggestion)
        print(f"{BOLD}{idx}.{RESET} {CYAN}{lines[0]}{RESET} {DIM}({label}){RESET}")
        for line in lines[1:]:
            print(f"   {DIM}{line}{RESET}")


def interactive_selector(
    input_fn: Callable[[str], str] = input,
) -> Callable[[Sequence[Suggestion]], int]:
    """Build a selector that lists suggestions and reads a 1-based choice.

    ``0`` or empty input cancels and yields ``-1``.
    """

    def select(suggestions: Sequence[Suggestion]) -> int:
        print_suggestions(suggestions)
        while True:
            try:
                raw = input_fn(
                    f"Select a commit message [1-{len(suggestions)}, 0 to cancel]: "
                ).strip()
            except EOFError:
                return -1
            if raw in {"", "0"}:
                return -1
            if raw.isdigit() and 1 <= int(raw) <= len(suggestions):
                return int(raw) - 1
            print(
                f"{YELLOW}Please enter a number between 1 and "
                f"{len(suggestions)}.{RESET}"
            )

    return select


def pick_selector(number: int) -> Callable[[Sequence[Suggestion]], int]:
    """Selector for ``--pick N``; ``0`` cancels."""

    def select(suggestions: Sequence[Suggestion]) -> int:
        print_suggestions(suggestions)
        return number - 1 if number > 0 else -1

    return select


class CLI:
    """Argument parsing and dispatch to the commit workflow."""

    def __init__(self, input_fn: Callable[[str], str] = input) -> None:
        self._input = input_fn
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="commic",
            description=(
                "Generate conventional commit messages for pending Git changes "
                "with an LLM and commit the one you pick."
            ),
        )
        parser.add_argument(
            "path",
            nargs="?",
            default=None,
            help="Path inside the Git repository (default: current directory)",
        )
        parser.add_argument(
            "-r",
            "--reconfigure",
            action="store_true",
            help="Prompt for provider, model and API key variable, then save",
        )
        parser.add_argument(
            "--provider",
            choices=sorted(DEFAULT_MODELS),
            help="LLM provider to use for this run",
        )
        parser.add_argument("--model", help="Model name to use for this run")
        parser.add_argument(
            "--instruction",
            help="Extra instruction passed to the model (e.g. 'mention the ticket')",
        )
        parser.add_argument(
            "--pick",
            type=int,
            metavar="N",
            help="Commit suggestion N without prompting (0 cancels)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only print suggestions; do not stage or commit",
        )
        parser.add_argument(
            "--debug", action="store_true", help="Enable debug logging"
        )
        parser.add_argument(
            "-v",
            "--version",
            action="version",
            version=f"%(prog)s {__version__}",
        )
        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        try:
            parsed = self.parser.parse_args(args)
        except SystemExit as exc:
            code = exc.code
            return code if isinstance(code, int) else 0

        configure_logging(parsed.debug)
        logger.debug("cli.args %s", vars(parsed))

        try:
            if parsed.reconfigure:
                self._reconfigure(parsed.provider)
            overrides = {"provider": parsed.provider, "model": parsed.model}
            config = load_config(
                overrides={k: v for k, v in overrides.items() if v}
            )
            return self._execute(parsed, config)
        except ConfigError as exc:
            self._print_error(exc)
            return 2
        except CommicError as exc:
            self._print_error(exc)
            return 1
        except KeyboardInterrupt:
            print(f"\n{YELLOW}Cancelled.{RESET}")
            return 130

    def _execute(self, parsed: argparse.Namespace, config: Config) -> int:
        if parsed.dry_run:
            selector = None
        elif parsed.pick is not None:
            selector = pick_selector(parsed.pick)
        else:
            selector = interactive_selector(self._input)

        print(f"{DIM}Using {config.provider} model {config.model}{RESET}")
        workflow = CommicWorkflow(
            repo_path=parsed.path,
            config=config,
            selector=selector,
            show_progress=True,
        )
        result = workflow.execute(
            custom_instruction=parsed.instruction, dry_run=parsed.dry_run
        )

        if selector is None:
            print_suggestions(result.suggestions)
            return 0
        if result.cancelled:
            print("Commit cancelled. No changes were made.")
            return 0

        print(f"{GREEN}Committed successfully!{RESET}")
        print(f"   Repository: {result.repository}")
        print(f"   Branch: {result.branch}")
        print(f"   Commit: {DIM}{result.short_hash}{RESET}")
        return 0

    def _reconfigure(self, provider_hint: Optional[str]) -> Config:
        print(f"{BOLD}Configuration setup{RESET}")
        for name in DEFAULT_MODELS:
            print(f"  - {describe_provider(name)}")
        default_provider = provider_hint or "gemini"
        provider = self._ask("Provider", default_provider)
        if provider not in DEFAULT_MODELS:
            raise ConfigError(
                f"Unknown provider: {provider}",
                "Choose one of: " + ", ".join(DEFAULT_MODELS),
            )
        defaults = DEFAULT_MODELS[provider]
        model = self._ask("Model", defaults["model"])
        api_key_env = self._ask("API key environment variable", defaults["api_key_env"])
        config = Config(
            provider=provider,
            model=model,
            llm_endpoint=defaults["endpoint"],
            api_key_env=api_key_env,
        )
        path = save_config(config)
        print(f"{GREEN}Configuration saved to {path}{RESET}")
        if not config.resolve_api_key():
            print(f"{YELLOW}Remember to export {api_key_env} before running.{RESET}")
        return config

    def _ask(self, label: str, default: str) -> str:
        try:
            answer = self._input(f"{label} [{default}]: ").strip()
        except EOFError:
            answer = ""
        return answer or default

    @staticmethod
    def _print_error(exc: CommicError) -> None:
        print(f"{RED}Error: {exc}{RESET}", file=sys.stderr)
        if exc.suggestion:
            print(f"{DIM}{exc.suggestion}{RESET}", file=sys.stderr)


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
