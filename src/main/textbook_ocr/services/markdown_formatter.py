"""Convert flat OCR text into structured Markdown.

The formatter is a single left-to-right pass over the lines. Each line is
classified from itself and its immediate neighbours, and the only state
carried between lines is whether the previous emitted line was a list item.
"""

from __future__ import annotations

import re
from enum import Enum

HEADING_MAX_LENGTH = 50

_CHAPTER_PATTERN = re.compile(r"^(chapter|section|part|第\s*\d+\s*章|第\s*\d+\s*節)", re.IGNORECASE)
_ENUMERATOR_PATTERN = re.compile(r"^(\d+(\.\d+)*\s+|[A-Z]\.\s+)")
_BULLET_PATTERN = re.compile(r"^[\s•\-*+◦○●■□▪▫]\s+")
_NUMBERED_PATTERN = re.compile(r"^\d+[.)]\s+")


class State(Enum):
    IN_PARAGRAPH = "paragraph"
    IN_LIST = "list"


class LineKind(Enum):
    BLANK = "blank"
    HEADING = "heading"
    BULLET = "bullet"
    NUMBERED = "numbered"
    TEXT = "text"


def _is_heading_candidate(lines: list[str], index: int) -> bool:
    line = lines[index]
    if index > 0 and lines[index - 1]:
        return False
    if len(line) >= HEADING_MAX_LENGTH:
        return False
    if index == len(lines) - 1:
        return True
    following = lines[index + 1]
    return not following or len(following) < len(line)


def classify_line(lines: list[str], index: int) -> LineKind:
    """Classify ``lines[index]``; ``lines`` must already be stripped."""
    line = lines[index]
    if not line:
        return LineKind.BLANK
    if _is_heading_candidate(lines, index):
        return LineKind.HEADING
    if _BULLET_PATTERN.match(line):
        return LineKind.BULLET
    if _NUMBERED_PATTERN.match(line):
        return LineKind.NUMBERED
    return LineKind.TEXT


def heading_level(line: str) -> int:
    if _CHAPTER_PATTERN.match(line):
        return 1
    if _ENUMERATOR_PATTERN.match(line):
        return 2
    return 3


def format_markdown(raw_text: str) -> str:
    """Return Markdown for the OCR text block ``raw_text``."""
    lines = [line.strip() for line in raw_text.split("\n")]
    parts: list[str] = []
    state = State.IN_PARAGRAPH

    for index, line in enumerate(lines):
        kind = classify_line(lines, index)

        if kind is LineKind.BLANK:
            parts.append("\n")
            state = State.IN_PARAGRAPH
        elif kind is LineKind.HEADING:
            parts.append(f"{'#' * heading_level(line)} {line}\n\n")
        elif kind is LineKind.BULLET:
            if state is State.IN_PARAGRAPH:
                parts.append("\n")
                state = State.IN_LIST
            parts.append(f"- {_BULLET_PATTERN.sub('', line, count=1)}\n")
        elif kind is LineKind.NUMBERED:
            if state is State.IN_PARAGRAPH:
                parts.append("\n")
                state = State.IN_LIST
            parts.append(f"{line}\n")
        else:
            if state is State.IN_LIST:
                parts.append("\n")
                state = State.IN_PARAGRAPH
            parts.append(f"{line}\n")

    return "".join(parts)
