"""Core workflow logic for commic."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .config import Config, get_active_config
from .exceptions import GitError, ValidationError
from .generator import GenerationResult, Generator, SuggestionGenerator
from .git import DiffStats, GitRepo
from .llm import LLMClient
from .suggestions import Suggestion

logger = logging.getLogger(__name__)

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
RED = "\033[91m"

# Returns the chosen index, or -1/None to cancel.
Selector = Callable[[Sequence[Suggestion]], Optional[int]]


@dataclass
class WorkflowResult:
    """Outcome of one commic run."""

    suggestions: list[Suggestion] = field(default_factory=list)
    selected: Optional[str] = None
    commit_hash: Optional[str] = None
    branch: Optional[str] = None
    repository: Optional[str] = None
    cancelled: bool = False
    remote_url: Optional[str] = None
    stats: Optional[DiffStats] = None
    generation: Optional[GenerationResult] = None

    @property
    def committed(self) -> bool:
        return self.commit_hash is not None

    @property
    def short_hash(self) -> Optional[str]:
        return self.commit_hash[:7] if self.commit_hash else None


class CommicWorkflow:
    """Generate suggestions for the pending changes and commit the chosen one.

    ``generator`` defaults to an ``LLMClient`` built from ``config`` on first
    use, so repository problems surface before credential problems.
    Without a ``selector`` the run stops after generation.
    """

    def __init__(
        self,
        repo_path: Optional[str] = None,
        config: Optional[Config] = None,
        generator: Optional[Generator] = None,
        selector: Optional[Selector] = None,
        show_progress: bool = False,
    ) -> None:
        self._config = config or get_active_config()
        self.git_repo = GitRepo(repo_path or self._config.git_repo_path)
        self._generator = generator
        self._selector = selector
        self._show_progress = show_progress

    def _get_generator(self) -> Generator:
        if self._generator is None:
            self._generator = LLMClient(self._config)
        return self._generator

    def _print(self, text: str) -> None:
        if self._show_progress:
            print(text)

    def execute(
        self, custom_instruction: Optional[str] = None, dry_run: bool = False
    ) -> WorkflowResult:
        """Run the whole flow once.

        Raises:
            GitError: No commits yet, nothing to commit, or a git command failed.
            CommicError: Any generation failure from the retry controller.
        """
        repo = self.git_repo
        if not repo.has_commits():
            raise GitError(
                "Repository has no commits yet",
                "Create an initial commit first before using this tool.",
            )

        result = WorkflowResult(
            repository=repo.repository_name,
            branch=repo.get_current_branch(),
            remote_url=repo.get_remote_url(),
        )
        self._print(f"{BOLD}{CYAN}{result.repository}{RESET} on {result.branch}")
        self._print(f"{DIM}{repo.repo_path}{RESET}")
        if result.remote_url:
            self._print(f"{DIM}{result.remote_url}{RESET}")

        diff = repo.get_diff()
        if not diff.has_changes:
            raise GitError(
                "No changes to commit",
                "Make some changes to your files before generating a commit message.",
            )
        result.stats = repo.get_diff_stats()
        self._print(
            f"{result.stats.files_changed} file(s) changed, "
            f"{GREEN}+{result.stats.insertions}{RESET} "
            f"{YELLOW}-{result.stats.deletions}{RESET}"
        )

        controller = SuggestionGenerator.from_config(
            self._get_generator(), self._config
        )
        generation = controller.run(diff, custom_instruction)
        result.generation = generation
        result.suggestions = list(generation.suggestions)
        logger.info(
            "workflow.generated count=%d state=%s attempts=%d",
            len(result.suggestions),
            generation.state.value,
            generation.attempts,
        )
        if generation.degraded:
            self._print(f"{YELLOW}Only partial suggestions could be generated.{RESET}")
        elif generation.used_fallback:
            self._print(
                f"{YELLOW}Model output was unusable; using a generic message.{RESET}"
            )

        if dry_run or self._selector is None:
            return result

        index = self._selector(result.suggestions)
        if index is None or index == -1:
            result.cancelled = True
            logger.info("workflow.cancelled")
            return result
        if not 0 <= index < len(result.suggestions):
            raise ValidationError(
                f"Selection {index + 1} is out of range",
                f"Choose a number between 1 and {len(result.suggestions)}.",
            )
        result.selected = result.suggestions[index].message

        if diff.unstaged:
            logger.debug("workflow.stage_all")
            repo.stage_all()
        result.commit_hash = repo.commit(result.selected)
        logger.info("workflow.committed hash=%s", result.commit_hash)
        return result
