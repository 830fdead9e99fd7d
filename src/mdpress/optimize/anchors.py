"""Anchor extraction and preservation checks.

An anchor is a substring of the original config that compression must
reproduce. Anchors come in two categories:

- STRICT: file paths, shell commands, and symbols defined in code blocks.
  Losing one fails the pipeline.
- SOFT: known tool names. The model may consolidate or rephrase these, so
  losing one is only reported.

Extraction is heuristic and split across small matchers, each yielding
``(value, category)`` pairs. ``extract_categorized_anchors`` runs them in
order and deduplicates by value; the first category seen for a value wins.
"""

from __future__ import annotations

import dataclasses
import enum
import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Protocol


class AnchorCategory(enum.Enum):
    STRICT = "strict"
    SOFT = "soft"


KNOWN_TOOLS: tuple[str, ...] = (
    # Python
    "pytest", "ruff", "black", "isort", "mypy", "pyright", "flake8", "pylint",
    "poetry", "pip", "pipenv", "uv", "pydantic", "fastapi", "django", "flask",
    # Go
    "gofmt", "goimports", "golangci-lint", "go test", "go build", "go mod",
    # JavaScript/TypeScript
    "npm", "yarn", "pnpm", "bun", "eslint", "prettier", "biome", "vitest",
    "jest", "webpack", "vite", "rollup", "esbuild", "tsc", "typescript",
    # Rust
    "cargo", "rustfmt", "clippy",
    # General
    "git", "docker", "make", "bash", "zsh", "curl", "wget",
)

COMMAND_PREFIXES: tuple[str, ...] = (
    "npm ", "yarn ", "pnpm ", "bun ",
    "go ", "cargo ",
    "python ", "pip ", "uv ",
    "git ", "docker ",
    "make", "bash ", "sh ",
    "curl ", "wget ",
)

# Names that show up in illustrative snippets but say nothing about the
# project. Compared lower-cased.
GENERIC_IDENTIFIERS: frozenset[str] = frozenset({
    "config", "cfg", "conf", "settings", "options", "opts",
    "data", "result", "results", "response", "res", "resp",
    "value", "val", "item", "items", "list", "arr",
    "input", "output", "params", "args", "props",
    "user", "users", "name", "id", "key", "keys",
    "err", "error", "e", "ex", "msg", "message",
    "ctx", "context", "req", "request",
    "i", "j", "k", "n", "x", "y", "z",
    "a", "b", "c", "s", "t", "v", "w",
    "tmp", "temp", "foo", "bar", "baz",
    "got", "want", "expected", "actual", "tt", "tc",
    "tests", "test",
})

_BOUNDARY = r"""(?:^|[\s"'(])"""

_PATH_PATTERNS = (
    # Absolute: /foo/bar (letter after the slash)
    re.compile(_BOUNDARY + r"(/[a-zA-Z][a-zA-Z0-9_\-./]*)"),
    # Relative: ./foo, ../foo
    re.compile(_BOUNDARY + r"(\.\./[a-zA-Z0-9_\-./]+|\./[a-zA-Z0-9_\-./]+)"),
    # Home: ~/foo
    re.compile(_BOUNDARY + r"(~/[a-zA-Z0-9_\-./]+)"),
    # Dotfiles: .gitignore, .env, .eslintrc.json
    re.compile(_BOUNDARY + r"(\.[a-zA-Z][a-zA-Z0-9_\-]+(?:\.[a-zA-Z]+)?)"),
    # Config and source files by extension
    re.compile(
        _BOUNDARY
        + r"([a-zA-Z][a-zA-Z0-9_\-]*\.(?:yaml|yml|json|toml|md|txt|py|go|ts|js|rs))"
    ),
)

_DOT_NUMBER = re.compile(r"^\.\d+$")
_VERSION = re.compile(r"^v?\d+\.\d+")
_NUMERIC_FILE = re.compile(r"^\d+\.[a-z]+$")

_BACKTICK_SPAN = re.compile(r"`([^`]+)`")
_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\n(.*?)```", re.DOTALL)
_DEFINITION_PATTERNS = (
    re.compile(r"(?:def|class)\s+([a-zA-Z_][a-zA-Z0-9_]*)"),  # Python
    re.compile(r"func\s+([a-zA-Z_][a-zA-Z0-9_]*)"),  # Go
    re.compile(r"function\s+([a-zA-Z_][a-zA-Z0-9_]*)"),  # JS/TS
)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

class AnchorMatcher(Protocol):
    category: AnchorCategory

    def matches(self, content: str) -> Iterable[tuple[str, AnchorCategory]]: ...


@dataclasses.dataclass(frozen=True)
class ToolNameMatcher:
    """Known tool names anywhere in the text, case-insensitive."""

    tools: Sequence[str] = KNOWN_TOOLS
    category: AnchorCategory = AnchorCategory.SOFT

    def matches(self, content: str) -> Iterator[tuple[str, AnchorCategory]]:
        lowered = content.lower()
        for tool in self.tools:
            if tool.lower() in lowered:
                yield tool, self.category


def is_valid_path(candidate: str) -> bool:
    """Reject version strings, numeric filenames, and two-character noise."""
    if len(candidate) < 2:
        return False
    if _DOT_NUMBER.match(candidate) or _VERSION.match(candidate):
        return False
    if candidate == "..":
        return False
    if _NUMERIC_FILE.match(candidate):
        return False
    return True


@dataclasses.dataclass(frozen=True)
class FilePathMatcher:
    """Absolute, relative, home, and dotfile paths plus config filenames."""

    category: AnchorCategory = AnchorCategory.STRICT

    def matches(self, content: str) -> Iterator[tuple[str, AnchorCategory]]:
        seen: set[str] = set()
        for pattern in _PATH_PATTERNS:
            for raw in pattern.findall(content):
                path = raw.strip("\"'")
                if path in seen or not is_valid_path(path):
                    continue
                seen.add(path)
                yield path, self.category


def looks_like_command(
    text: str,
    tools: Sequence[str] = KNOWN_TOOLS,
    prefixes: Sequence[str] = COMMAND_PREFIXES,
) -> bool:
    """Heuristic: does an inline code span read like a shell command?"""
    if len(text) < 2 or len(text) > 100:
        return False
    lowered = text.lower()
    words = lowered.split()
    if not words:
        return False
    if words[0] in {t.lower() for t in tools}:
        return True
    return lowered.startswith(tuple(prefixes))


@dataclasses.dataclass(frozen=True)
class CommandMatcher:
    """Backtick spans that start with a known tool or command prefix."""

    tools: Sequence[str] = KNOWN_TOOLS
    prefixes: Sequence[str] = COMMAND_PREFIXES
    category: AnchorCategory = AnchorCategory.STRICT

    def matches(self, content: str) -> Iterator[tuple[str, AnchorCategory]]:
        seen: set[str] = set()
        for span in _BACKTICK_SPAN.findall(content):
            cmd = span.strip()
            if cmd in seen or not looks_like_command(cmd, self.tools, self.prefixes):
                continue
            seen.add(cmd)
            yield cmd, self.category


@dataclasses.dataclass(frozen=True)
class CodeSymbolMatcher:
    """Function and class names defined inside fenced code blocks.

    Variable names are deliberately ignored; only definitions count.
    """

    ignore: frozenset[str] = GENERIC_IDENTIFIERS
    category: AnchorCategory = AnchorCategory.STRICT

    def matches(self, content: str) -> Iterator[tuple[str, AnchorCategory]]:
        for block in _FENCED_BLOCK.findall(content):
            for pattern in _DEFINITION_PATTERNS:
                for name in pattern.findall(block):
                    if name.lower() not in self.ignore:
                        yield name, self.category


DEFAULT_MATCHERS: tuple[AnchorMatcher, ...] = (
    ToolNameMatcher(),
    FilePathMatcher(),
    CommandMatcher(),
    CodeSymbolMatcher(),
)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class CategorizedAnchors:
    strict: list[str] = dataclasses.field(default_factory=list)
    soft: list[str] = dataclasses.field(default_factory=list)

    def all(self) -> list[str]:
        return sorted(self.strict + self.soft)


def extract_categorized_anchors(
    content: str,
    matchers: Sequence[AnchorMatcher] = DEFAULT_MATCHERS,
) -> CategorizedAnchors:
    """Find anchors in *content*, grouped by validation strictness."""
    result = CategorizedAnchors()
    seen: set[str] = set()
    for matcher in matchers:
        for value, category in matcher.matches(content):
            if value in seen:
                continue
            seen.add(value)
            if category is AnchorCategory.STRICT:
                result.strict.append(value)
            else:
                result.soft.append(value)
    result.strict.sort()
    result.soft.sort()
    return result


def extract_anchors(content: str) -> list[str]:
    """Flat, sorted list of every anchor regardless of category."""
    return extract_categorized_anchors(content).all()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ValidationResult:
    preserved: list[str] = dataclasses.field(default_factory=list)
    missing_strict: list[str] = dataclasses.field(default_factory=list)
    missing_soft: list[str] = dataclasses.field(default_factory=list)

    def has_strict_failures(self) -> bool:
        return bool(self.missing_strict)

    def all_missing(self) -> list[str]:
        return sorted(self.missing_strict + self.missing_soft)


def validate_anchors_categorized(
    original: str,
    optimized: str,
    matchers: Sequence[AnchorMatcher] = DEFAULT_MATCHERS,
) -> ValidationResult:
    """Check which anchors of *original* still appear in *optimized*.

    Anchors are always taken from the original text, so lossless
    reformatting never counts as a loss. Containment is case-insensitive.
    """
    anchors = extract_categorized_anchors(original, matchers)
    haystack = optimized.lower()
    result = ValidationResult()

    for anchor in anchors.strict:
        if anchor.lower() in haystack:
            result.preserved.append(anchor)
        else:
            result.missing_strict.append(anchor)

    for anchor in anchors.soft:
        if anchor.lower() in haystack:
            result.preserved.append(anchor)
        else:
            result.missing_soft.append(anchor)

    return result


def validate_anchors(original: str, optimized: str) -> tuple[list[str], list[str]]:
    """Return ``(preserved, missing)`` without the strict/soft split."""
    result = validate_anchors_categorized(original, optimized)
    return result.preserved, result.all_missing()
