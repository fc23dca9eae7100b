"""Git operations for commic."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import GitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawDiff:
    """Staged and unstaged diff text of a repository."""

    staged: str
    unstaged: str
    has_changes: bool

    @classmethod
    def from_texts(cls, staged: str, unstaged: str) -> "RawDiff":
        return cls(
            staged=staged,
            unstaged=unstaged,
            has_changes=bool(staged) or bool(unstaged),
        )

    def combined(self, separator: str = "\n\n") -> str:
        return separator.join(part for part in (self.staged, self.unstaged) if part)


@dataclass(frozen=True)
class DiffStats:
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0


def find_git_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the top-level Git repository directory for ``start_path``.

    Attempts ``git rev-parse --show-toplevel`` first so worktrees and
    submodules are handled correctly. Falls back to walking parent
    directories looking for a ``.git`` directory or file. Returns ``None``
    when no Git repository can be found starting from ``start_path``.
    """

    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    if path.is_file():
        path = path.parent

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=True,
        )
        top = result.stdout.strip()
        if top:
            return Path(top)
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        pass

    for candidate in (path, *path.parents):
        git_meta = candidate / ".git"
        if git_meta.exists():
            return candidate

    return None


class GitRepo:
    """Reads diffs from, and commits to, one Git repository."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        """Locate the repository containing ``repo_path``.

        Raises:
            GitError: If the path does not exist or is not inside a repository.
        """
        start = Path(repo_path or ".").expanduser().resolve(strict=False)
        if not start.exists():
            raise GitError(
                f"Path not accessible: {start}",
                "Ensure the path exists and you have permission to access it.",
            )
        root = find_git_repo_root(start)
        if root is None:
            raise GitError(
                f"No Git repository found at: {start}",
                'Initialize a Git repository with "git init" or provide a '
                "valid repository path.",
            )
        self.repo_path = root
        if not self._is_git_repo():
            raise GitError(f"Not a Git repository: {self.repo_path}")

    def _is_git_repo(self) -> bool:
        """Check if the current directory is a Git repository."""
        try:
            self._run_git_command(["rev-parse", "--git-dir"])
            return True
        except GitError:
            return False

    def _run_git_command(self, args: list[str]) -> str:
        """Run a Git command and return its output."""
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip()
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            raise GitError(f"Git command failed: {cmd}\n{e.stderr}") from e
        except FileNotFoundError as exc:
            raise GitError("Git command not found. Please install Git.") from exc

    @property
    def repository_name(self) -> str:
        return self.repo_path.name

    def has_commits(self) -> bool:
        """Return True if HEAD points at a commit."""
        try:
            self._run_git_command(["rev-parse", "--verify", "HEAD"])
        except GitError:
            return False
        return True

    def get_staged_diff(self) -> str:
        """Get the diff of staged changes."""
        return self._run_git_command(["diff", "--cached"])

    def get_working_diff(self) -> str:
        """Get the diff of working directory changes."""
        return self._run_git_command(["diff"])

    def get_diff(self) -> RawDiff:
        """Get staged and unstaged changes together."""
        try:
            staged = self.get_staged_diff()
            unstaged = self.get_working_diff()
        except GitError as e:
            raise GitError(
                f"Failed to retrieve Git diff: {e}",
                "Ensure you are in a valid Git repository with proper permissions.",
            ) from e
        return RawDiff.from_texts(staged, unstaged)

    def get_diff_stats(self) -> DiffStats:
        """Summarise changes against HEAD from ``git diff --numstat``."""
        output = self._run_git_command(["diff", "HEAD", "--numstat"])
        files = insertions = deletions = 0
        for line in output.split("\n"):
            parts = line.split("\t")
            if len(parts) < 3:
                continue
            files += 1
            # Binary files report "-" for both counts
            if parts[0].isdigit():
                insertions += int(parts[0])
            if parts[1].isdigit():
                deletions += int(parts[1])
        return DiffStats(
            files_changed=files, insertions=insertions, deletions=deletions
        )

    def stage_all(self) -> None:
        """Stage all changes (including new and deleted files)."""
        self._run_git_command(["add", "-A"])

    def commit(self, message: str) -> str:
        """Create a commit with the given message and return its hash."""
        try:
            self._run_git_command(["commit", "-m", message])
        except GitError as e:
            raise GitError(
                f"Git commit failed: {e}",
                "Check the error message above and resolve any Git issues.",
            ) from e
        return self._run_git_command(["rev-parse", "HEAD"])

    def get_current_branch(self) -> str:
        return self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"])

    def get_remote_url(self, remote: str = "origin") -> Optional[str]:
        """Return the URL of ``remote`` or None when it is not configured."""
        try:
            url = self._run_git_command(["remote", "get-url", remote])
        except GitError:
            return None
        return url or None
