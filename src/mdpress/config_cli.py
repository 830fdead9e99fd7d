"""CLI for mdpress configuration.

Usage:
    mdpress config list                          Show sections, keys and defaults
    mdpress config get <section.key>             Print the effective value
    mdpress config set [--global] <key> <value>  Write an override
    mdpress config reset [--global] <key>        Remove an override
    mdpress config show [--origin]               Dump every effective value
    mdpress config path [--global]               Print the config file location
    mdpress config edit [--global]               Open config.toml in $EDITOR

Keys are ``section.key``, e.g. ``optimize.max_tokens``. Environment
variables such as ``MDPRESS_OPTIMIZE_MODEL`` override both files.
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import subprocess
import sys
from pathlib import Path

import mdpress.config

_TEMPLATE = "# mdpress configuration; see `mdpress config list`\n"


def _ensure_registry() -> None:
    import mdpress.optimize.config  # noqa: F401


def _split_key(key: str) -> tuple[str, str]:
    section, sep, field = key.partition(".")
    if not sep or not section or not field:
        raise KeyError(f"Invalid key format: {key!r} (expected section.key)")
    return section, field


def _scope(args: argparse.Namespace) -> str:
    return "global" if args.global_flag else "local"


def cmd_list(args: argparse.Namespace) -> int:
    sections = mdpress.config.list_sections()
    for name, cls in sorted(sections.items()):
        print(f"[{name}]")
        for f in dataclasses.fields(cls):
            type_name = f.type if isinstance(f.type, str) else f.type.__name__
            print(f"  {f.name}: {type_name} = {f.default!r}")
        print()
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    section, field = _split_key(args.key)
    print(mdpress.config.get_effective(section, field, args.path))
    return 0


def cmd_set(args: argparse.Namespace) -> int:
    section, field = _split_key(args.key)
    scope = _scope(args)
    mdpress.config.set_value(section, field, args.value, scope=scope, root=args.path)
    print(f"Set {args.key} = {args.value} ({scope})")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    section, field = _split_key(args.key)
    scope = _scope(args)
    if mdpress.config.reset_value(section, field, scope=scope, root=args.path):
        print(f"Reset {args.key} ({scope})")
    else:
        print(f"No {scope} override for {args.key}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    for name in sorted(mdpress.config.list_sections()):
        print(f"[{name}]")
        for key, (value, origin) in mdpress.config.explain(name, args.path).items():
            suffix = f"  # {origin}" if args.origin else ""
            print(f"  {key} = {value!r}{suffix}")
        print()
    return 0


def cmd_path(args: argparse.Namespace) -> int:
    print(mdpress.config.config_path(_scope(args), args.path))
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    path = mdpress.config.config_path(_scope(args), args.path)
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_TEMPLATE, encoding="utf-8")
    editor = os.environ.get("EDITOR", "vi")
    return subprocess.call([editor, str(path)])


_HANDLERS = {
    "list": cmd_list,
    "get": cmd_get,
    "set": cmd_set,
    "reset": cmd_reset,
    "show": cmd_show,
    "path": cmd_path,
    "edit": cmd_edit,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdpress config", description="mdpress configuration."
    )
    sub = parser.add_subparsers(dest="subcmd")

    def add(name: str, help_text: str, *, key=False, value=False, scoped=False):
        p = sub.add_parser(name, help=help_text)
        if key:
            p.add_argument("key", help="section.key")
        if value:
            p.add_argument("value", help="New value")
        if scoped:
            p.add_argument("--global", dest="global_flag", action="store_true")
        p.add_argument(
            "--path", type=Path, default=None, help="Project directory (default: repo root)"
        )
        return p

    add("list", "Show sections, keys and defaults")
    add("get", "Print the effective value", key=True)
    add("set", "Write an override", key=True, value=True, scoped=True)
    add("reset", "Remove an override", key=True, scoped=True)
    show = add("show", "Dump every effective value")
    show.add_argument("--origin", action="store_true", help="Show where values come from")
    add("path", "Print the config file location", scoped=True)
    add("edit", "Open config.toml in $EDITOR", scoped=True)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``mdpress config``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.subcmd is None:
        parser.print_help()
        return 1

    _ensure_registry()
    try:
        return _HANDLERS[args.subcmd](args)
    except (KeyError, ValueError, AttributeError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        print(message, file=sys.stderr)
        return 1
