"""Suggestion values and the acceptance policy applied to them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .validator import is_single_line, validate

MAX_SUGGESTIONS = 5
MIN_ACCEPTED = 2
MIN_SINGLE_LINE = 1


class SuggestionKind(Enum):
    SINGLE_LINE = "single-line"
    MULTI_LINE = "multi-line"


@dataclass(frozen=True)
class Suggestion:
    """A validated commit message offered to the user.

    ``kind`` is derived from ``message`` on every access and cannot be set.
    """

    message: str

    @property
    def kind(self) -> SuggestionKind:
        if is_single_line(self.message):
            return SuggestionKind.SINGLE_LINE
        return SuggestionKind.MULTI_LINE

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


def evaluate(candidates: Iterable[str]) -> list[Suggestion]:
    """Keep candidates that validate with zero errors, in discovery order."""
    return [
        Suggestion(message=candidate.strip())
        for candidate in candidates
        if validate(candidate.strip()).valid
    ]


def meets_policy(suggestions: Sequence[Suggestion]) -> bool:
    """At least two suggestions, at least one of them single-line.

    The prompt asks for three single-line and two multi-line messages, but
    acceptance only needs this much; a shortfall triggers a retry.
    """
    if len(suggestions) < MIN_ACCEPTED:
        return False
    single = sum(1 for s in suggestions if s.kind is SuggestionKind.SINGLE_LINE)
    return single >= MIN_SINGLE_LINE


def rank_suggestions(
    suggestions: Sequence[Suggestion], limit: int = MAX_SUGGESTIONS
) -> list[Suggestion]:
    """Single-line first (stable), truncated to ``limit``."""
    ordered = sorted(
        suggestions, key=lambda s: s.kind is not SuggestionKind.SINGLE_LINE
    )
    return ordered[:limit]
