"""Shared test fixtures for mdpress tests."""

from __future__ import annotations

import pathlib

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real ~/.config and API credentials."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def claude_md() -> str:
    """A realistic config with strict and soft anchors."""
    return """\
# Project Rules

## Testing
- You should always run `pytest -x` before pushing
- Make sure to keep fixtures in tests/conftest.py
- Make sure to keep fixtures in tests/conftest.py

## Style
- Format with ruff and black
- Settings live in pyproject.toml



## Code
```python
def load_settings(path):
    return path
```
"""
