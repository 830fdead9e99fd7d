"""Typed errors raised by the optimization pipeline.

Each error carries a stable ``code`` and a user-facing ``hint`` so the
CLI can map failures to exit codes and suggestions without string matching.
"""

from __future__ import annotations

from collections.abc import Sequence

ANTHROPIC_AUTH_FAILED = "ANTHROPIC_AUTH_FAILED"
OPTIMIZATION_FAILED = "OPTIMIZATION_FAILED"
VALIDATION_FAILED = "VALIDATION_FAILED"


class MdpressError(Exception):
    """Base error with a code, message, hint, and optional cause."""

    code: str = ""

    def __init__(
        self,
        message: str,
        *,
        hint: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.hint = hint
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class AuthFailed(MdpressError):
    code = ANTHROPIC_AUTH_FAILED

    def __init__(self, env_var: str = "ANTHROPIC_API_KEY") -> None:
        self.env_var = env_var
        super().__init__(
            "Anthropic API authentication failed",
            hint=f"Set the {env_var} environment variable, "
            "or use --deterministic to skip the API",
        )


class OptimizationFailed(MdpressError):
    """Network, encode, decode, or API failure during compression."""

    code = OPTIMIZATION_FAILED

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(
            f"optimization failed: {message}",
            hint="Retry, or use --deterministic for cleanup without the API",
            cause=cause,
        )


class ValidationFailed(MdpressError):
    """Compression succeeded but dropped strict anchors."""

    code = VALIDATION_FAILED

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "optimization removed critical content: " + ", ".join(self.missing),
            hint="Review the missing anchors, or re-run with --force to accept the loss",
        )
