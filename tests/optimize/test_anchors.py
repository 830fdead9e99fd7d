"""Tests for mdpress.optimize.anchors: matchers, extraction, validation."""

from __future__ import annotations

import pytest

import mdpress.optimize.anchors as anchors

STRICT = anchors.AnchorCategory.STRICT
SOFT = anchors.AnchorCategory.SOFT


def _values(matcher, text: str) -> list[str]:
    return [value for value, _ in matcher.matches(text)]


class TestToolNameMatcher:
    def test_finds_known_tools_case_insensitive(self) -> None:
        found = _values(anchors.ToolNameMatcher(), "Lint with RUFF, test with Pytest.")
        assert "ruff" in found
        assert "pytest" in found

    def test_yields_soft_category(self) -> None:
        pairs = list(anchors.ToolNameMatcher().matches("use docker"))
        assert ("docker", SOFT) in pairs

    def test_custom_tool_list(self) -> None:
        matcher = anchors.ToolNameMatcher(tools=("nox",))
        assert _values(matcher, "run nox and pytest") == ["nox"]


class TestFilePathMatcher:
    def test_path_shapes(self) -> None:
        text = "Paths: /etc/hosts ./scripts/run.sh ~/.npmrc .env config.yaml"
        found = _values(anchors.FilePathMatcher(), text)
        assert set(found) == {
            "/etc/hosts",
            "./scripts/run.sh",
            "~/.npmrc",
            ".env",
            "config.yaml",
        }

    def test_parent_relative_path(self) -> None:
        found = _values(anchors.FilePathMatcher(), "see ../shared/lib for helpers")
        assert found == ["../shared/lib"]

    def test_quoted_paths(self) -> None:
        found = _values(anchors.FilePathMatcher(), 'open "settings.json" now')
        assert found == ["settings.json"]

    def test_versions_and_numbers_rejected(self) -> None:
        found = _values(anchors.FilePathMatcher(), "Requires v1.2.3 or 1.2, see 123.json")
        assert found == []

    def test_path_inside_word_not_matched(self) -> None:
        # conftest.py is preceded by "/" rather than a boundary
        found = _values(anchors.FilePathMatcher(), "inside tests/conftest.py")
        assert found == []

    @pytest.mark.parametrize(
        ("candidate", "valid"),
        [
            ("v1.0.0", False),
            ("1.2", False),
            (".5", False),
            ("..", False),
            ("123.json", False),
            ("a", False),
            (".env", True),
            ("a.md", True),
            ("/usr/bin", True),
        ],
    )
    def test_is_valid_path(self, candidate: str, valid: bool) -> None:
        assert anchors.is_valid_path(candidate) is valid


class TestCommandMatcher:
    def test_known_commands(self) -> None:
        text = (
            "Run `npm install`, then `make`, then `docker compose up`, "
            "or `python -m pytest`."
        )
        found = _values(anchors.CommandMatcher(), text)
        assert found == [
            "npm install",
            "make",
            "docker compose up",
            "python -m pytest",
        ]

    def test_first_word_match_is_case_insensitive(self) -> None:
        assert _values(anchors.CommandMatcher(), "`Git status`") == ["Git status"]

    def test_non_commands_ignored(self) -> None:
        text = "`x` `foo bar` `MAX_RETRIES` `" + "npm " + "a" * 100 + "`"
        assert _values(anchors.CommandMatcher(), text) == []

    def test_duplicate_spans_reported_once(self) -> None:
        assert _values(anchors.CommandMatcher(), "`git pull` and `git pull`") == [
            "git pull"
        ]

    def test_looks_like_command(self) -> None:
        assert anchors.looks_like_command("cargo build --release")
        assert anchors.looks_like_command("sh ./install.sh")
        assert not anchors.looks_like_command("self.client")


class TestCodeSymbolMatcher:
    def test_definitions_in_fenced_blocks(self) -> None:
        text = (
            "```python\n"
            "def build_index():\n    pass\n"
            "class Indexer:\n    pass\n"
            "def config():\n    pass\n"
            "```\n"
            "```go\nfunc HandleRequest(w, r) {}\nfunc err() {}\n```\n"
            "```js\nfunction renderPage() {}\n```\n"
        )
        found = _values(anchors.CodeSymbolMatcher(), text)
        assert set(found) == {"build_index", "Indexer", "HandleRequest", "renderPage"}

    def test_definitions_outside_fences_ignored(self) -> None:
        assert _values(anchors.CodeSymbolMatcher(), "def outside_block(): pass") == []

    def test_generic_names_compared_lowercase(self) -> None:
        text = "```python\nclass Config:\n    pass\nclass Data:\n    pass\n```\n"
        assert _values(anchors.CodeSymbolMatcher(), text) == []


class TestExtractCategorizedAnchors:
    def test_realistic_config(self, claude_md: str) -> None:
        result = anchors.extract_categorized_anchors(claude_md)
        assert result.strict == ["load_settings", "pyproject.toml", "pytest -x"]
        assert result.soft == ["black", "make", "pytest", "ruff"]

    def test_first_category_wins(self) -> None:
        # "go test" is a known tool (soft) and also a backtick command
        result = anchors.extract_categorized_anchors("Run `go test` often")
        assert "go test" in result.soft
        assert "go test" not in result.strict

    def test_all_is_sorted_union(self, claude_md: str) -> None:
        result = anchors.extract_categorized_anchors(claude_md)
        assert result.all() == sorted(result.strict + result.soft)

    def test_empty_text(self) -> None:
        result = anchors.extract_categorized_anchors("")
        assert result.strict == []
        assert result.soft == []

    def test_custom_matchers(self) -> None:
        result = anchors.extract_categorized_anchors(
            "run nox then .env", matchers=[anchors.ToolNameMatcher(tools=("nox",))]
        )
        assert result.soft == ["nox"]
        assert result.strict == []

    def test_extract_anchors_flat(self) -> None:
        assert anchors.extract_anchors("Use ruff on ./src") == ["./src", "ruff"]


class TestValidateAnchorsCategorized:
    def test_missing_command_is_strict_failure(self) -> None:
        original = "## Testing\n- Run `go test ./...` before commit\n"
        result = anchors.validate_anchors_categorized(original, "## Testing\n- Run tests\n")
        assert result.has_strict_failures()
        assert "go test ./..." in result.missing_strict
        assert result.missing_soft == ["go test"]

    def test_missing_tool_is_soft_only(self) -> None:
        original = "Lint with ruff before committing.\n"
        result = anchors.validate_anchors_categorized(original, "Lint before committing.\n")
        assert result.missing_soft == ["ruff"]
        assert result.missing_strict == []
        assert not result.has_strict_failures()

    def test_containment_is_case_insensitive(self) -> None:
        original = "Always run `pytest -x`.\n"
        result = anchors.validate_anchors_categorized(original, "PYTEST -X first")
        assert result.missing_strict == []
        assert set(result.preserved) == {"pytest -x", "pytest"}

    def test_partition_covers_all_original_anchors(self, claude_md: str) -> None:
        optimized = "## Style\n- ruff, black\n- pyproject.toml\n"
        result = anchors.validate_anchors_categorized(claude_md, optimized)
        extracted = anchors.extract_categorized_anchors(claude_md).all()
        combined = result.preserved + result.missing_strict + result.missing_soft
        assert sorted(combined) == extracted
        assert result.all_missing() == sorted(
            result.missing_strict + result.missing_soft
        )

    def test_position_does_not_matter(self) -> None:
        original = "Use ./a then ./b\n"
        result = anchors.validate_anchors_categorized(original, "./b first, then ./a")
        assert result.missing_strict == []

    def test_validate_anchors_tuple(self) -> None:
        preserved, missing = anchors.validate_anchors("Use ruff on ./src", "./src")
        assert preserved == ["./src"]
        assert missing == ["ruff"]
