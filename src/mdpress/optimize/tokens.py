"""Approximate token counting.

``count_tokens`` is a characters/4 heuristic, close enough to Claude's
tokenizer for sizing targets and reporting. It is never exact and must not
be used for correctness decisions.
"""

from __future__ import annotations

import dataclasses


def count_tokens(content: str) -> int:
    """Estimate tokens as ``len(content) // 4``.

    ``len`` counts code points, not bytes, so multi-byte characters are
    not over-counted.
    """
    if not content:
        return 0
    return len(content) // 4


@dataclasses.dataclass
class TokenStats:
    before: int = 0
    after: int = 0

    @property
    def saved(self) -> int:
        return self.before - self.after

    @property
    def percent_reduction(self) -> float:
        """Reduction as a percentage (0-100); 0 when there was nothing to reduce."""
        if self.before == 0:
            return 0.0
        return self.saved / self.before * 100
