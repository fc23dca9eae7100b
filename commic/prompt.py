"""Prompt construction for commit message generation."""

from __future__ import annotations

from typing import Optional

from .git import RawDiff
from .validator import MAX_SUBJECT_LENGTH, VALID_TYPES

MAX_DIFF_LENGTH = 800_000
TRUNCATION_MARKER = "\n\n[... diff truncated due to size limit ...]"
SEPARATOR = "---"

_TYPE_GUIDANCE = (
    ("feat", "new user-facing capability or new behavior"),
    ("fix", "bug fix or incorrect behavior"),
    ("refactor", "internal restructuring without behavior change"),
    ("perf", "performance improvements"),
    ("docs", "documentation-only changes (README, CHANGELOG, /docs)"),
    ("test", "test-only changes"),
    ("ci", "CI pipeline or workflow changes"),
    ("build", "build system or dependency changes"),
    ("chore", "maintenance, tooling, or non-functional changes"),
    ("style", "formatting-only changes (no logic change)"),
)


def truncate_diff(text: str, limit: int = MAX_DIFF_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def build_commit_prompt(
    diff: RawDiff,
    custom_instruction: Optional[str] = None,
    single_line_count: int = 3,
    multi_line_count: int = 2,
) -> str:
    """Construct the prompt asking for a batch of alternative messages.

    The counts only shape the request; how many suggestions are accepted
    is decided after parsing.
    """
    total = single_line_count + multi_line_count
    diff_text = truncate_diff(diff.combined())

    prompt_parts = [
        "You are an expert Git commit message writer. Analyze the ENTIRE Git "
        f"diff below and generate exactly {total} commit messages that "
        "summarize ALL changes together.",
        "",
        "IMPORTANT:",
        "- Analyze ALL changes in the diff as a single commit",
        "- Each suggested message should describe the complete set of changes",
        "- Provide different perspectives/styles for the SAME set of changes",
        "",
        "LANGUAGE:",
        "- Output must be in English only, even if the diff is not.",
        "",
        "FILE CONTEXT FIRST:",
        "- Treat added, removed, or renamed files as high-signal context.",
        "- Infer a new file's purpose from its path and name before its contents.",
        "",
        "TYPE CONSISTENCY:",
        "- Determine ONE primary commit type that matches the ENTIRE diff.",
        f"- ALL {total} suggested commit messages MUST use that type.",
        "- Vary only wording, emphasis, and optionally scope.",
        "",
        "Type selection guidance:",
    ]
    prompt_parts.extend(f"- {name}: {meaning}" for name, meaning in _TYPE_GUIDANCE)
    prompt_parts.extend(
        [
            "If unclear, choose chore.",
            "",
            "CRITICAL RULES:",
            "1. Format: <type>(scope)?: description",
            "2. Valid types: " + ", ".join(VALID_TYPES),
            "3. Use imperative mood (add, fix, update; NOT added, fixed, updated)",
            "4. Description must start with lowercase",
            f"5. Single-line messages: max {MAX_SUBJECT_LENGTH} characters, no body",
            "6. Multi-line messages: blank line between subject and body",
            "7. Output must include exactly:",
            f"   - {single_line_count} single-line commit messages",
            f"   - {multi_line_count} multi-line commit messages",
            "",
            "OUTPUT FORMAT:",
            f'- Separate each commit message with exactly "{SEPARATOR}" on its '
            "own line.",
            "- Return ONLY the commit messages, no explanations, no numbering.",
            "",
        ]
    )
    if custom_instruction and custom_instruction.strip():
        prompt_parts.extend(["USER INSTRUCTION:", custom_instruction.strip(), ""])
    prompt_parts.extend(
        [
            "GIT DIFF:",
            diff_text,
            "",
            f"Generate exactly {total} commit messages that each describe ALL "
            "the changes above:",
        ]
    )
    return "\n".join(prompt_parts)
