"""Prompts for model-based compression."""

from __future__ import annotations

from collections.abc import Sequence

import mdpress.optimize.tokens

_SYSTEM_PROMPT = """\
You are a technical documentation optimizer. Your task is to compress \
CLAUDE.md configuration files while preserving their semantic meaning.

GOALS:
1. Preserve ALL actionable guidance - nothing should be lost
2. Eliminate redundancy and verbose explanations
3. Consolidate related rules into concise statements
4. Remove generic advice Claude already knows
5. Keep project-specific and non-obvious guidance

RULES:
- Never remove specific tool names, file paths, or commands
- Never remove project-specific conventions or patterns
- Combine similar rules: "use black" + "use isort" + "use ruff" → "Format with black, isort, ruff"
- Remove truisms: "write clean code" adds nothing
- Preserve structure (headers) but consolidate within sections
- Use bullet points for lists instead of paragraphs
- Keep code examples intact

OUTPUT FORMAT:
Return only the optimized markdown. No explanations or commentary."""


def build_system_prompt() -> str:
    return _SYSTEM_PROMPT


def build_user_prompt(content: str, target_tokens: int, anchors: Sequence[str]) -> str:
    """Embed sizes, the must-keep anchor list, and the content to compress."""
    current_tokens = mdpress.optimize.tokens.count_tokens(content)

    anchors_section = ""
    if anchors:
        anchors_section = (
            "\nCRITICAL ANCHORS (must be preserved exactly):\n"
            f"{', '.join(anchors)}\n"
        )

    return (
        f"Optimize the following CLAUDE.md configuration to approximately "
        f"{target_tokens} tokens while preserving all semantic meaning.\n"
        "\n"
        f"Current token count: {current_tokens}\n"
        f"Target token count: {target_tokens}\n"
        f"{anchors_section}"
        "\n"
        "CONTENT TO OPTIMIZE:\n"
        "---\n"
        f"{content}\n"
        "---\n"
        "\n"
        "Output ONLY the optimized markdown."
    )
