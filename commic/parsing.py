"""Extraction of candidate commit messages from raw generator output.

Generators rarely follow the requested output format exactly. ``segment``
tries an ordered list of splitting strategies, from the strict separator
format the prompt asks for down to a line-by-line scan, and ``clean``
strips the chatter models like to wrap around their answers.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Sequence

from .validator import TYPE_PREFIX_PATTERN, VALID_TYPES

logger = logging.getLogger(__name__)

Strategy = Callable[[str], list[str]]

_TYPES = "|".join(VALID_TYPES)

_SEPARATOR_LINE = re.compile(r"\n---\n")
_NUMBERED_ITEM = re.compile(r"^\d+\.\s+", re.MULTILINE)
_NUMBERED_PREFIX = re.compile(r"^\d+\.")
_BLANK_RUN = re.compile(r"\n\n+")
_CONCATENATED_MESSAGE = re.compile(
    r"^[ \t]*(?:\d+\.\s+|[-*•][ \t]*)?"
    rf"(?P<message>(?:{_TYPES})(?:\([^)]+\))?!?:\s[^\n]+"
    r"(?:\n(?!---|\d+\.)[^\n]+)*)",
    re.MULTILINE,
)
_PREAMBLE = re.compile(
    r"^(Here are|Here's|Generated|Commit messages?):?\s*", re.IGNORECASE
)
_BULLET = re.compile(r"^[-*•]\s*")


def _tidy(parts: Sequence[str]) -> list[str]:
    stripped = (part.strip() for part in parts)
    return [part for part in stripped if part]


def split_on_separator_lines(text: str) -> list[str]:
    """Split on lines made of exactly ``---``."""
    if not _SEPARATOR_LINE.search(text):
        return []
    return _tidy(_SEPARATOR_LINE.split(text))


def split_on_dashes(text: str) -> list[str]:
    """Split on ``---`` wherever it appears."""
    return _tidy(text.split("---"))


def split_on_numbered_items(text: str) -> list[str]:
    """Split a ``1. ... 2. ...`` style list, dropping the numbering."""
    if not _NUMBERED_ITEM.search(text):
        return []
    parts = _tidy(_NUMBERED_ITEM.split(text))
    return [part for part in parts if not _NUMBERED_PREFIX.match(part)]


def split_on_blank_lines(text: str) -> list[str]:
    """Split on blank-line runs, keeping only segments that open with a type."""
    if not _BLANK_RUN.search(text):
        return []
    return [
        part for part in _tidy(_BLANK_RUN.split(text))
        if TYPE_PREFIX_PATTERN.match(part)
    ]


def match_concatenated_messages(text: str) -> list[str]:
    """Recover messages glued together without any separator."""
    return _tidy(m.group("message") for m in _CONCATENATED_MESSAGE.finditer(text))


def scan_lines(text: str) -> list[str]:
    """Walk lines, starting a new message at every type-prefixed line.

    Blank lines stay inside the current message so bodies survive; lines
    before the first type-prefixed line are dropped.
    """
    messages: list[str] = []
    current: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if TYPE_PREFIX_PATTERN.match(stripped):
            if current:
                messages.append("\n".join(current))
            current = [stripped]
        elif current:
            current.append(stripped)
    if current:
        messages.append("\n".join(current))
    return _tidy(messages)


STRATEGIES: tuple[Strategy, ...] = (
    split_on_separator_lines,
    split_on_dashes,
    split_on_numbered_items,
    split_on_blank_lines,
    match_concatenated_messages,
    scan_lines,
)


def segment(
    raw_response: str, strategies: Sequence[Strategy] = STRATEGIES
) -> list[str]:
    """Split a raw generator response into candidate messages.

    Strategies run in order until one yields two or more candidates. When
    none does, the most recent non-empty result is returned, so a lone
    message still comes through whole.
    """
    if not raw_response or not raw_response.strip():
        return []

    fallback: list[str] = []
    for strategy in strategies:
        candidates = strategy(raw_response)
        if len(candidates) > 1:
            logger.debug(
                "segment.split strategy=%s count=%d",
                strategy.__name__,
                len(candidates),
            )
            return candidates
        if candidates:
            fallback = candidates
    logger.debug("segment.unsplit count=%d", len(fallback))
    return fallback


def _strip_preamble(text: str) -> str:
    """Drop a leading "Here are ..." line, keeping a message on that same line."""
    match = _PREAMBLE.match(text)
    if not match:
        return text
    rest = text[match.end():]
    first, _, tail = rest.partition("\n")
    if TYPE_PREFIX_PATTERN.match(_BULLET.sub("", first.strip(), count=1)):
        return rest
    return tail


def clean(candidates: Sequence[str]) -> list[str]:
    """Strip preamble and bullet noise, then drop anything not type-prefixed.

    This is a pre-filter only; full validation happens in the evaluator.
    """
    cleaned: list[str] = []
    for candidate in candidates:
        text = _strip_preamble(candidate)
        text = _BULLET.sub("", text, count=1).strip()
        if text and TYPE_PREFIX_PATTERN.match(text):
            cleaned.append(text)
    return cleaned
