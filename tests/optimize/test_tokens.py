"""Tests for mdpress.optimize.tokens."""

from __future__ import annotations

import pytest

import mdpress.optimize.tokens


class TestCountTokens:
    def test_empty(self) -> None:
        assert mdpress.optimize.tokens.count_tokens("") == 0

    def test_hello_world(self) -> None:
        # 11 characters / 4
        assert mdpress.optimize.tokens.count_tokens("hello world") == 2

    def test_short_text_rounds_down(self) -> None:
        assert mdpress.optimize.tokens.count_tokens("abc") == 0

    def test_counts_code_points_not_bytes(self) -> None:
        text = "日本語テキスト!"  # 8 code points, 22 UTF-8 bytes
        assert len(text.encode()) > 8
        assert mdpress.optimize.tokens.count_tokens(text) == 2

    def test_emoji(self) -> None:
        assert mdpress.optimize.tokens.count_tokens("🎉🎉🎉🎉") == 1


class TestTokenStats:
    def test_saved(self) -> None:
        stats = mdpress.optimize.tokens.TokenStats(before=100, after=40)
        assert stats.saved == 60

    def test_percent_reduction(self) -> None:
        stats = mdpress.optimize.tokens.TokenStats(before=200, after=50)
        assert stats.percent_reduction == pytest.approx(75.0)

    def test_percent_reduction_zero_before(self) -> None:
        stats = mdpress.optimize.tokens.TokenStats(before=0, after=0)
        assert stats.percent_reduction == 0.0

    def test_growth_is_negative(self) -> None:
        stats = mdpress.optimize.tokens.TokenStats(before=10, after=15)
        assert stats.saved == -5
        assert stats.percent_reduction == pytest.approx(-50.0)
