"""Deterministic commit message used when every generator attempt failed."""

from __future__ import annotations

from typing import Optional

from .git import RawDiff
from .validator import MAX_SUBJECT_LENGTH

# Checked in order; the first group with any keyword present wins.
_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("fix", ("fix", "bug", "error")),
    ("feat", ("feat", "add", "new")),
    ("docs", ("doc", "readme")),
    ("refactor", ("refactor",)),
)
_DEFAULT_TYPE = "chore"
_HEADER_SCAN_LINES = 5
# Side of an added or deleted file in a unified diff.
_NULL_PATH = "/dev/null"


def _pick_type(text: str) -> str:
    for commit_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return commit_type
    return _DEFAULT_TYPE


def _first_file_name(text: str) -> Optional[str]:
    for line in text.split("\n")[:_HEADER_SCAN_LINES]:
        if line.startswith("+++") or line.startswith("---"):
            path = line[3:].strip()
            if path == _NULL_PATH:
                continue
            name = path.split("/")[-1]
            return name or None
    return None


def synthesize(diff: RawDiff) -> Optional[str]:
    """Build a minimal ``type: update <file>`` message from the diff alone.

    The type comes from keyword sniffing of the lower-cased diff and the
    file name from the first ``+++``/``---`` marker in its first five lines,
    skipping the ``/dev/null`` side of added or deleted files.
    The current heuristics always return a message; ``None`` stays part of
    the contract for callers.
    """
    combined = f"{diff.staged}\n{diff.unstaged}".lower()
    commit_type = _pick_type(combined)
    file_name = _first_file_name(combined)
    if file_name:
        message = f"{commit_type}: update {file_name}"
        if len(message) <= MAX_SUBJECT_LENGTH:
            return message
    return f"{commit_type}: update code"
