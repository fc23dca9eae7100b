"""Conventional commit grammar checks for commic.

Subject line grammar: ``type[(scope)][!]: description`` followed, for
multi-line messages, by a blank line and an optional body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

VALID_TYPES: tuple[str, ...] = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
)

MAX_SUBJECT_LENGTH = 72

# Base subject pattern. The type token is checked against VALID_TYPES
# separately so an unknown type yields a named error instead of a parse miss.
_SUBJECT_PATTERN = re.compile(r"^(\w+)(\([a-z0-9-]+\))?(!)?: (.+)$")

_TYPE_ALTERNATION = "|".join(VALID_TYPES)

# Cheap "looks like a commit message" check shared with the response parser.
TYPE_PREFIX_PATTERN = re.compile(
    rf"^({_TYPE_ALTERNATION})(\([^)]+\))?(!)?:\s"
)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of :func:`validate`. ``valid`` is always ``not errors``."""

    valid: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationOutcome":
        return cls(valid=not errors, errors=tuple(errors))


@dataclass(frozen=True)
class ParsedMessage:
    """Decomposition of a message whose subject matches the grammar."""

    type: str
    scope: Optional[str]
    breaking: bool
    description: str
    body: Optional[str] = None


def validate(message: str) -> ValidationOutcome:
    """Validate a commit message against the conventional commit grammar.

    Only an empty message or an unparseable subject short-circuits; every
    other check runs and contributes its own error.

    Args:
        message: Full commit message, subject plus optional body.

    Returns:
        ValidationOutcome listing every violated rule in check order.
    """
    if not message or not message.strip():
        return ValidationOutcome.from_errors(["Commit message cannot be empty"])

    lines = message.split("\n")
    subject = lines[0]
    match = _SUBJECT_PATTERN.match(subject)
    if not match:
        return ValidationOutcome.from_errors(
            ["Subject line must follow format: type(scope)?: description"]
        )

    errors: list[str] = []
    commit_type, _scope, _breaking, description = match.groups()

    if commit_type not in VALID_TYPES:
        errors.append(
            'Invalid type "{}". Must be one of: {}'.format(
                commit_type, ", ".join(VALID_TYPES)
            )
        )

    if not description.strip():
        errors.append("Description cannot be empty")
    else:
        if description[0].isspace():
            errors.append("Exactly one space should follow the colon")
        if description.lstrip()[0].isupper():
            errors.append("Description should start with lowercase letter")

    if len(subject) > MAX_SUBJECT_LENGTH:
        errors.append(
            f"Subject line should be {MAX_SUBJECT_LENGTH} characters or less"
        )

    if len(lines) > 1 and lines[1].strip() != "":
        errors.append("There should be a blank line between subject and body")

    return ValidationOutcome.from_errors(errors)


def parse(message: str) -> Optional[ParsedMessage]:
    """Split a message into its conventional commit parts.

    Returns None when the subject line does not match the grammar.
    """
    lines = message.split("\n")
    match = _SUBJECT_PATTERN.match(lines[0])
    if not match:
        return None

    commit_type, scope_with_parens, bang, description = match.groups()
    scope = scope_with_parens[1:-1] if scope_with_parens else None
    body = None
    if len(lines) > 2:
        body = "\n".join(lines[2:]).strip() or None

    return ParsedMessage(
        type=commit_type,
        scope=scope,
        breaking=bang == "!" or "BREAKING CHANGE:" in message,
        description=description,
        body=body,
    )


def is_single_line(message: str) -> bool:
    """True when exactly one non-blank line remains after dropping blanks."""
    lines = [line for line in message.split("\n") if line.strip()]
    return len(lines) == 1
