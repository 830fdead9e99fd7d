"""Layered configuration for mdpress.

Sections are dataclasses registered with ``@configurable``. A loaded
section is built from these layers, later ones winning:

    default   field defaults in code
    global    ~/.config/mdpress/config.toml
    local     <project>/.mdpress/config.toml
    env       MDPRESS_<SECTION>_<KEY> environment variables

The project root is the nearest ancestor holding ``.git``, or the cwd.
``explain()`` reports which layer each effective value came from.
"""

from __future__ import annotations

import dataclasses
import os
import pathlib
import tomllib
import typing
from typing import Any, TypeVar

T = TypeVar("T")

SCOPES = ("local", "global")
ENV_PREFIX = "MDPRESS_"

_REGISTRY: dict[str, type] = {}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def configurable(section: str):
    """Class decorator: register a dataclass under *section*."""

    def decorator(cls: type[T]) -> type[T]:
        _REGISTRY[section] = cls
        return cls

    return decorator


def list_sections() -> dict[str, type]:
    return dict(_REGISTRY)


def _section_cls(section: str) -> type:
    try:
        return _REGISTRY[section]
    except KeyError:
        raise KeyError(f"Unknown config section: {section}") from None


def _field_types(cls: type) -> dict[str, type]:
    """Resolved annotation per field, with string annotations evaluated."""
    hints = typing.get_type_hints(cls)
    return {f.name: hints.get(f.name, str) for f in dataclasses.fields(cls)}


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def config_dir() -> pathlib.Path:
    """User-wide mdpress directory, ``~/.config/mdpress``."""
    return pathlib.Path.home() / ".config" / "mdpress"


def find_repo_root(cwd: pathlib.Path) -> pathlib.Path | None:
    """Nearest ancestor of *cwd* (inclusive) that contains ``.git``."""
    current = cwd.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").is_dir():
            return candidate
    return None


def project_root(root: pathlib.Path | None = None) -> pathlib.Path:
    if root is not None:
        return root
    cwd = pathlib.Path.cwd()
    return find_repo_root(cwd) or cwd


def config_path(scope: str, root: pathlib.Path | None = None) -> pathlib.Path:
    """The TOML file backing *scope* (``local`` or ``global``)."""
    if scope not in SCOPES:
        raise ValueError(f"Unknown scope {scope!r} (expected one of {SCOPES})")
    if scope == "global":
        return config_dir() / "config.toml"
    return project_root(root) / ".mdpress" / "config.toml"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

def _read_toml(path: pathlib.Path) -> dict[str, Any]:
    """Parse *path*; a missing or unparsable file reads as empty."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _save_toml(path: pathlib.Path, data: dict[str, Any]) -> None:
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data), encoding="utf-8")


def parse_value(raw: str, target: type) -> Any:
    """Turn a command-line or environment string into *target*."""
    if target is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if target is int:
        return int(raw)
    if target is float:
        return float(raw)
    return raw


def _check_type(value: Any, target: type, where: str) -> Any:
    """Accept TOML values of the field's type; ints widen to float."""
    if target is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if target in (bool, int, float, str):
        if isinstance(value, target) and not (
            target is int and isinstance(value, bool)
        ):
            return value
        raise ValueError(
            f"{where}: expected {target.__name__}, got {type(value).__name__}"
        )
    return value


def _layers(
    section: str, root: pathlib.Path | None
) -> list[tuple[str, dict[str, Any]]]:
    """Non-default layers for *section*, lowest precedence first."""
    cls = _section_cls(section)
    types = _field_types(cls)

    layers: list[tuple[str, dict[str, Any]]] = []
    for scope in ("global", "local"):
        path = config_path(scope, root)
        table = _read_toml(path).get(section, {})
        values = {
            key: _check_type(value, types[key], f"{path} [{section}] {key}")
            for key, value in table.items()
            if key in types
        }
        layers.append((scope, values))

    env = {}
    for key, target in types.items():
        raw = os.environ.get(f"{ENV_PREFIX}{section}_{key}".upper())
        if raw is not None:
            env[key] = parse_value(raw, target)
    layers.append(("env", env))
    return layers


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def explain(
    section: str, root: pathlib.Path | None = None
) -> dict[str, tuple[Any, str]]:
    """Map each field to ``(effective value, origin layer)``."""
    cls = _section_cls(section)
    result: dict[str, tuple[Any, str]] = {}
    for f in dataclasses.fields(cls):
        if f.default is not dataclasses.MISSING:
            result[f.name] = (f.default, "default")
    for origin, values in _layers(section, root):
        for key, value in values.items():
            result[key] = (value, origin)
    return result


def load(section: str, root: pathlib.Path | None = None) -> Any:
    """Build the section's dataclass from every layer."""
    cls = _section_cls(section)
    merged: dict[str, Any] = {}
    for _, values in _layers(section, root):
        merged.update(values)
    return cls(**merged)


def get_effective(section: str, key: str, root: pathlib.Path | None = None) -> Any:
    return getattr(load(section, root), key)


def set_value(
    section: str,
    key: str,
    value: Any,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> None:
    """Persist *key* in the TOML file for *scope*.

    String values are parsed to the field's type first, so ``"8192"``
    lands in TOML as an integer.
    """
    types = _field_types(_section_cls(section))
    if key not in types:
        raise KeyError(f"Unknown key: {section}.{key}")
    if isinstance(value, str):
        value = parse_value(value, types[key])

    path = config_path(scope, root)
    data = _read_toml(path)
    data.setdefault(section, {})[key] = value
    _save_toml(path, data)


def reset_value(
    section: str,
    key: str,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> bool:
    """Drop an override from *scope*. Returns False if there was none."""
    path = config_path(scope, root)
    data = _read_toml(path)
    table = data.get(section)
    if not table or key not in table:
        return False
    del table[key]
    if not table:
        del data[section]
    _save_toml(path, data)
    return True
