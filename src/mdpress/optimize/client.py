"""Anthropic Messages API client for model-based compression.

One synchronous request per ``optimize()`` call; no retries. The caller
bounds the call with ``timeout`` and decides whether to re-run the pipeline.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Sequence
from typing import Protocol

import httpx

import mdpress.errors
import mdpress.optimize.config
import mdpress.optimize.prompt

logger = logging.getLogger("mdpress.optimize.client")

API_VERSION = "2023-06-01"
DEFAULT_MODEL = mdpress.optimize.config.DEFAULT_MODEL
DEFAULT_BASE_URL = mdpress.optimize.config.DEFAULT_BASE_URL
DEFAULT_MAX_TOKENS = 8192
DEFAULT_TIMEOUT = 120.0


class Compressor(Protocol):
    """Anything that can compress content toward a token target."""

    model: str

    def optimize(
        self,
        content: str,
        target_tokens: int,
        anchors: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> str: ...

    def close(self) -> None: ...


ClientFactory = Callable[[str], Compressor]


class CompressionClient:
    """Thin wrapper over ``POST /messages``.

    The API key is resolved at construction, so a missing credential fails
    before any request is built.
    """

    def __init__(
        self,
        model: str = "",
        *,
        api_key: str | None = None,
        api_key_env: str = "ANTHROPIC_API_KEY",
        base_url: str = DEFAULT_BASE_URL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if api_key is None:
            api_key = os.environ.get(api_key_env, "")
        if not api_key:
            raise mdpress.errors.AuthFailed(api_key_env)

        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def optimize(
        self,
        content: str,
        target_tokens: int,
        anchors: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> str:
        """Ask the model to compress *content*; returns the concatenated text."""
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": mdpress.optimize.prompt.build_system_prompt(),
            "messages": [
                {
                    "role": "user",
                    "content": mdpress.optimize.prompt.build_user_prompt(
                        content, target_tokens, anchors
                    ),
                }
            ],
        }
        data = self._send(payload, timeout=timeout)

        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise mdpress.errors.OptimizationFailed(
                "failed to decode response",
                ValueError("response has no content list"),
            )
        parts = []
        for block in blocks:
            if not isinstance(block, dict) or block.get("type") != "text":
                continue
            text = block.get("text", "")
            if not isinstance(text, str):
                raise mdpress.errors.OptimizationFailed(
                    "failed to decode response",
                    ValueError("text block is not a string"),
                )
            parts.append(text)
        return "".join(parts)

    def _send(self, payload: dict, *, timeout: float | None) -> dict:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise mdpress.errors.OptimizationFailed(
                "failed to encode request", exc
            ) from exc

        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
        }
        logger.info(
            "Requesting compression from %s (%d chars)", self.model, len(body)
        )
        try:
            resp = self._http.post(
                f"{self.base_url}/messages",
                content=body,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.HTTPError as exc:
            raise mdpress.errors.OptimizationFailed("API request failed", exc) from exc

        if resp.status_code != 200:
            raise mdpress.errors.OptimizationFailed(_error_message(resp))

        try:
            data = resp.json()
        except ValueError as exc:
            raise mdpress.errors.OptimizationFailed(
                "failed to decode response", exc
            ) from exc
        if not isinstance(data, dict):
            raise mdpress.errors.OptimizationFailed(
                "failed to decode response",
                ValueError("response is not a JSON object"),
            )
        return data


def _error_message(resp: httpx.Response) -> str:
    """Prefer the API's own error message over a bare status line."""
    try:
        message = resp.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        message = ""
    if message:
        return f"API error ({resp.status_code}): {message}"
    return f"API returned status {resp.status_code}"


def client_factory_from_config(
    cfg: mdpress.optimize.config.OptimizeConfig,
) -> ClientFactory:
    """Build a factory that creates clients with *cfg*'s endpoint and limits."""

    def factory(model: str) -> Compressor:
        return CompressionClient(
            model or cfg.model,
            api_key_env=cfg.api_key_env,
            base_url=cfg.base_url,
            max_tokens=cfg.max_tokens,
            timeout=cfg.timeout,
        )

    return factory
