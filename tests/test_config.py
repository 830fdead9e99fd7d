"""Tests for mdpress.config: registry, layer precedence, set/reset."""

from __future__ import annotations

import dataclasses
import pathlib

import pytest

import mdpress.config
import mdpress.optimize.config


@mdpress.config.configurable("limits")
@dataclasses.dataclass
class _LimitsConfig:
    retries: int = 3
    label: str = "none"
    ratio: float = 0.5
    strict: bool = False


def _write(path: pathlib.Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture
def local_toml(tmp_path: pathlib.Path) -> pathlib.Path:
    return mdpress.config.config_path("local", tmp_path)


@pytest.fixture
def global_toml() -> pathlib.Path:
    return mdpress.config.config_path("global")


class TestRegistry:
    def test_sections_registered(self) -> None:
        sections = mdpress.config.list_sections()
        assert sections["optimize"] is mdpress.optimize.config.OptimizeConfig
        assert sections["limits"] is _LimitsConfig

    def test_defaults_without_files(self, tmp_path: pathlib.Path) -> None:
        cfg = mdpress.config.load("optimize", root=tmp_path)
        assert cfg == mdpress.optimize.config.OptimizeConfig()

    def test_unknown_section(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(KeyError, match="Unknown config section"):
            mdpress.config.load("missing_section", root=tmp_path)


class TestPaths:
    def test_global_under_home(self, global_toml: pathlib.Path) -> None:
        assert global_toml == pathlib.Path.home() / ".config" / "mdpress" / "config.toml"

    def test_local_under_root(self, tmp_path: pathlib.Path, local_toml) -> None:
        assert local_toml == tmp_path / ".mdpress" / "config.toml"

    def test_unknown_scope(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="Unknown scope"):
            mdpress.config.config_path("team", tmp_path)

    def test_repo_root_from_nested_dir(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "docs" / "guides"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert mdpress.config.project_root() == tmp_path.resolve()

    def test_cwd_when_not_in_repo(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(mdpress.config, "find_repo_root", lambda cwd: None)
        monkeypatch.chdir(tmp_path)
        assert mdpress.config.project_root() == pathlib.Path.cwd()


class TestLayers:
    def test_global_overrides_default(self, tmp_path, global_toml) -> None:
        _write(global_toml, '[optimize]\nmodel = "claude-global"\n')
        assert mdpress.config.load("optimize", root=tmp_path).model == "claude-global"

    def test_local_overrides_global(self, tmp_path, global_toml, local_toml) -> None:
        _write(global_toml, "[optimize]\nmax_tokens = 100\ntimeout = 9.0\n")
        _write(local_toml, "[optimize]\nmax_tokens = 200\n")
        cfg = mdpress.config.load("optimize", root=tmp_path)
        assert cfg.max_tokens == 200
        assert cfg.timeout == 9.0

    def test_env_overrides_files(
        self, tmp_path, local_toml, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(local_toml, "[optimize]\nmax_tokens = 200\n")
        monkeypatch.setenv("MDPRESS_OPTIMIZE_MAX_TOKENS", "300")
        assert mdpress.config.load("optimize", root=tmp_path).max_tokens == 300

    def test_unknown_keys_ignored(self, tmp_path, local_toml) -> None:
        _write(local_toml, '[optimize]\nbogus = 1\nmodel = "m"\n')
        assert mdpress.config.load("optimize", root=tmp_path).model == "m"

    def test_malformed_toml_reads_as_empty(self, tmp_path, local_toml) -> None:
        _write(local_toml, "[optimize\nmodel = ")
        cfg = mdpress.config.load("optimize", root=tmp_path)
        assert cfg.model == mdpress.optimize.config.DEFAULT_MODEL

    def test_int_widens_to_float(self, tmp_path, local_toml) -> None:
        _write(local_toml, "[optimize]\ntimeout = 30\n")
        timeout = mdpress.config.load("optimize", root=tmp_path).timeout
        assert timeout == 30.0
        assert isinstance(timeout, float)

    def test_wrong_type_rejected(self, tmp_path, local_toml) -> None:
        _write(local_toml, '[optimize]\nmax_tokens = "lots"\n')
        with pytest.raises(ValueError, match="expected int, got str"):
            mdpress.config.load("optimize", root=tmp_path)

    def test_bool_is_not_an_int(self, tmp_path, local_toml) -> None:
        _write(local_toml, "[limits]\nretries = true\n")
        with pytest.raises(ValueError):
            mdpress.config.load("limits", root=tmp_path)


class TestExplain:
    def test_reports_origin_per_key(
        self, tmp_path, global_toml, local_toml, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(global_toml, '[limits]\nlabel = "g"\nretries = 5\n')
        _write(local_toml, "[limits]\nretries = 7\n")
        monkeypatch.setenv("MDPRESS_LIMITS_STRICT", "yes")

        explained = mdpress.config.explain("limits", root=tmp_path)
        assert explained == {
            "retries": (7, "local"),
            "label": ("g", "global"),
            "ratio": (0.5, "default"),
            "strict": (True, "env"),
        }


class TestSetAndReset:
    def test_set_parses_to_field_type(self, tmp_path, local_toml) -> None:
        mdpress.config.set_value("limits", "retries", "7", root=tmp_path)
        assert mdpress.config.get_effective("limits", "retries", root=tmp_path) == 7
        assert "retries = 7" in local_toml.read_text()

    def test_set_global(self, tmp_path, global_toml) -> None:
        mdpress.config.set_value(
            "optimize", "model", "claude-x", scope="global", root=tmp_path
        )
        assert global_toml.is_file()
        assert mdpress.config.get_effective("optimize", "model", root=tmp_path) == "claude-x"

    def test_set_keeps_other_sections(self, tmp_path, local_toml) -> None:
        mdpress.config.set_value("limits", "label", "a", root=tmp_path)
        mdpress.config.set_value("optimize", "max_tokens", "10", root=tmp_path)
        assert mdpress.config.load("limits", root=tmp_path).label == "a"

    def test_reset_restores_default(self, tmp_path) -> None:
        mdpress.config.set_value("optimize", "max_tokens", "1000", root=tmp_path)
        assert mdpress.config.reset_value("optimize", "max_tokens", root=tmp_path)
        assert mdpress.config.get_effective("optimize", "max_tokens", root=tmp_path) == 8192

    def test_reset_without_override(self, tmp_path, local_toml) -> None:
        assert mdpress.config.reset_value("optimize", "model", root=tmp_path) is False
        assert not local_toml.exists()

    def test_set_unknown_key(self, tmp_path) -> None:
        with pytest.raises(KeyError, match="Unknown key"):
            mdpress.config.set_value("optimize", "nope", "x", root=tmp_path)

    def test_set_bad_int(self, tmp_path) -> None:
        with pytest.raises(ValueError):
            mdpress.config.set_value("optimize", "max_tokens", "lots", root=tmp_path)


class TestParseValue:
    @pytest.mark.parametrize(
        ("raw", "target", "expected"),
        [
            ("12", int, 12),
            ("2.5", float, 2.5),
            ("yes", bool, True),
            (" On ", bool, True),
            ("off", bool, False),
            ("text", str, "text"),
        ],
    )
    def test_parse(self, raw: str, target: type, expected) -> None:
        assert mdpress.config.parse_value(raw, target) == expected


class TestOptimizeConfig:
    def test_default_cache_dir(self) -> None:
        cfg = mdpress.optimize.config.OptimizeConfig()
        assert cfg.resolved_cache_dir() == mdpress.config.config_dir() / "optimized"

    def test_custom_cache_dir_expands_user(self) -> None:
        cfg = mdpress.optimize.config.OptimizeConfig(cache_dir="~/cache")
        assert cfg.resolved_cache_dir() == pathlib.Path.home() / "cache"

    def test_load_config_overrides(self, tmp_path, local_toml) -> None:
        _write(local_toml, "[optimize]\nmax_tokens = 300\n")
        cfg = mdpress.optimize.config.load_config(tmp_path, model="claude-cli", timeout=None)
        assert cfg.model == "claude-cli"
        assert cfg.max_tokens == 300
        assert cfg.timeout == 120.0
