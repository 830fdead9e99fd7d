"""Deterministic, LLM-free cleanup of markdown instruction files.

Normalizes whitespace, drops duplicate bullets within a section, and strips
filler phrases like "Make sure to". Fenced code passes through untouched as
long as it is not itself shaped like bullets.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Sequence

# Longer phrases come first so "You should always " wins over "You should ".
FILLER_PHRASES: tuple[str, ...] = (
    "You should always ",
    "You should ",
    "Always make sure to ",
    "Make sure to ",
    "Make sure that ",
    "Please make sure to ",
    "Please ensure that ",
    "Please ensure ",
    "It is important to ",
    "It's important to ",
    "Remember to always ",
    "Remember to ",
    "Be sure to ",
    "Don't forget to ",
)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_BULLET = re.compile(r"^(\s*[-*+]\s+)(.+)$")
_BULLET_PREFIX = re.compile(r"^(\s*[-*+]\s+)")


@dataclasses.dataclass
class PreprocessStats:
    blank_lines_removed: int = 0
    duplicates_removed: int = 0
    phrases_stripped: int = 0


def _is_section_header(line: str) -> bool:
    return line.startswith("## ") or line.startswith("### ")


def _count_blank_lines(content: str) -> int:
    return sum(1 for line in content.split("\n") if not line.strip())


def collapse_blank_lines(content: str) -> str:
    """Reduce runs of blank lines to a single blank line."""
    return _EXCESS_NEWLINES.sub("\n\n", content)


def remove_duplicate_bullets(content: str) -> tuple[str, int]:
    """Drop repeated bullet bodies within each ``##``/``###`` section.

    Bullets before the first section header are left alone.
    """
    result: list[str] = []
    seen: set[str] = set()
    in_section = False
    removed = 0

    for line in content.split("\n"):
        if _is_section_header(line):
            seen = set()
            in_section = True
            result.append(line)
            continue

        m = _BULLET.match(line)
        if m and in_section:
            body = m.group(2).strip()
            if body in seen:
                removed += 1
                continue
            seen.add(body)

        result.append(line)

    return "\n".join(result), removed


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def strip_filler_phrases(
    content: str,
    phrases: Sequence[str] = FILLER_PHRASES,
) -> tuple[str, int]:
    """Remove one leading filler phrase per line (case-insensitive)."""
    count = 0
    result: list[str] = []

    for line in content.split("\n"):
        m = _BULLET_PREFIX.match(line)
        prefix = m.group(1) if m else ""
        rest = line[len(prefix):]
        lowered = rest.lower()

        for phrase in phrases:
            if not lowered.startswith(phrase.lower()):
                continue
            remaining = rest[len(phrase):]
            if remaining:
                line = prefix + _capitalize_first(remaining)
                count += 1
                break

        result.append(line)

    return "\n".join(result), count


def _trim_trailing_whitespace(content: str) -> str:
    return "\n".join(line.rstrip(" \t") for line in content.split("\n"))


def preprocess(
    content: str,
    *,
    phrases: Sequence[str] = FILLER_PHRASES,
) -> tuple[str, PreprocessStats]:
    """Run every deterministic cleanup step and report what changed."""
    stats = PreprocessStats()

    content = content.replace("\r\n", "\n")

    blanks_before = _count_blank_lines(content)
    content = collapse_blank_lines(content)
    stats.blank_lines_removed = blanks_before - _count_blank_lines(content)

    content, stats.duplicates_removed = remove_duplicate_bullets(content)
    content, stats.phrases_stripped = strip_filler_phrases(content, phrases)
    content = _trim_trailing_whitespace(content)

    return content.rstrip("\n") + "\n", stats
