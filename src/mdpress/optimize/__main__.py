"""CLI for the optimization pipeline.

Usage:
    mdpress optimize [FILE] --owner O --repo R [options]
                                 Compress FILE (or stdin) and report savings
    mdpress cache list           Show cached optimizations
    mdpress cache status FILE --owner O --repo R
                                 Check whether the cache matches FILE
    mdpress cache clear --owner O --repo R
                                 Remove one cached optimization
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import mdpress.errors
import mdpress.optimize.cache
import mdpress.optimize.client
import mdpress.optimize.config
import mdpress.optimize.optimizer

EXIT_ERROR = 1
EXIT_AUTH = 2
EXIT_OPTIMIZATION = 3
EXIT_VALIDATION = 4

_MAX_DIFF_LINES = 20


def _read_input(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_result(
    result: mdpress.optimize.optimizer.Result, *, verbose: bool = False
) -> None:
    stats = result.stats
    print()
    print(f"  Before: {stats.before} tokens")
    print(f"  After: {stats.after} tokens")
    print(f"  Saved: {stats.saved} tokens ({stats.percent_reduction:.0f}%)")

    pre = result.preprocess_stats
    if verbose and not result.from_cache:
        print()
        print("  Pre-processing:")
        if pre.blank_lines_removed:
            print(f"    Blank lines removed: {pre.blank_lines_removed}")
        if pre.duplicates_removed:
            print(f"    Duplicates removed: {pre.duplicates_removed}")
        if pre.phrases_stripped:
            print(f"    Verbose phrases stripped: {pre.phrases_stripped}")

    if result.missing_soft:
        print()
        print(f"  Tool names consolidated: {', '.join(result.missing_soft)}")
    if result.missing_strict:
        print()
        print(f"  Warning: critical anchors missing: {', '.join(result.missing_strict)}")

    if result.from_cache:
        print("\n  (from cache)")
    elif result.deterministic:
        print("\n  (deterministic mode)")


def _print_diff(original: str, optimized: str) -> None:
    """Line-by-line comparison, truncated to the first few changes."""
    print()
    print("--- original")
    print("+++ optimized")
    print()

    orig_lines = original.split("\n")
    opt_lines = optimized.split("\n")
    shown = 0
    for i in range(max(len(orig_lines), len(opt_lines))):
        if shown >= _MAX_DIFF_LINES:
            break
        orig = orig_lines[i] if i < len(orig_lines) else None
        opt = opt_lines[i] if i < len(opt_lines) else None
        if orig == opt:
            continue
        if orig is not None:
            print(f"- {orig}")
        if opt is not None:
            print(f"+ {opt}")
        shown += 1

    if shown >= _MAX_DIFF_LINES:
        print(f"\n(diff truncated, showing first {_MAX_DIFF_LINES} changes)")


def _make_optimizer(
    cfg: mdpress.optimize.config.OptimizeConfig,
) -> mdpress.optimize.optimizer.Optimizer:
    cache = mdpress.optimize.cache.OptimizationCache(cfg.resolved_cache_dir())
    return mdpress.optimize.optimizer.Optimizer(
        cache,
        client_factory=mdpress.optimize.client.client_factory_from_config(cfg),
        default_model=cfg.model,
    )


def _cmd_optimize(
    args: argparse.Namespace, cfg: mdpress.optimize.config.OptimizeConfig
) -> int:
    try:
        content = _read_input(args.file)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Cannot read input: {exc}", file=sys.stderr)
        return EXIT_ERROR

    opts = mdpress.optimize.optimizer.Options(
        target=args.target,
        deterministic=args.deterministic,
        force=args.force,
        no_cache=args.no_cache,
        model=args.model or "",
    )
    optimizer = _make_optimizer(cfg)

    try:
        result = optimizer.optimize(
            content, args.owner, args.repo, opts, timeout=cfg.timeout
        )
    except mdpress.errors.ValidationFailed as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        for anchor in exc.missing:
            print(f"  - {anchor}", file=sys.stderr)
        print(exc.hint, file=sys.stderr)
        return EXIT_VALIDATION
    except mdpress.errors.AuthFailed as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(exc.hint, file=sys.stderr)
        return EXIT_AUTH
    except mdpress.errors.OptimizationFailed as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(exc.hint, file=sys.stderr)
        return EXIT_OPTIMIZATION
    finally:
        optimizer.close()

    _print_result(result, verbose=args.verbose)

    if args.diff:
        _print_diff(result.original_content, result.optimized_content)

    if args.output:
        if not result.optimized_content.strip():
            print("Refusing to write empty content", file=sys.stderr)
            return EXIT_ERROR
        try:
            Path(args.output).write_text(result.optimized_content, encoding="utf-8")
        except OSError as exc:
            print(f"Cannot write output: {exc}", file=sys.stderr)
            return EXIT_ERROR
        print(f"Wrote optimized config to {args.output}")
        return 0

    print()
    if result.from_cache:
        print("(from cache - use --force to re-optimize)")
    print("No file written. Use -o to save the optimized config.")
    return 0


def _cmd_cache(
    args: argparse.Namespace, cfg: mdpress.optimize.config.OptimizeConfig
) -> int:
    cache = mdpress.optimize.cache.OptimizationCache(cfg.resolved_cache_dir())

    if args.cache_command == "list":
        names = cache.list_cached()
        if not names:
            print("No cached optimizations.")
            return 0
        for name in names:
            print(name)
        return 0

    if args.cache_command == "clear":
        cache.clear(args.owner, args.repo)
        print(f"Cleared {args.owner}-{args.repo}")
        return 0

    if args.cache_command == "status":
        try:
            content = _read_input(args.file)
        except OSError as exc:
            print(f"Cannot read input: {exc}", file=sys.stderr)
            return EXIT_ERROR
        if cache.reconcile(args.owner, args.repo):
            print("Removed corrupt cache entry.")
        if not cache.exists(args.owner, args.repo):
            print("Not cached.")
            return 0
        source_hash = mdpress.optimize.cache.hash_content(content)
        if cache.is_stale(args.owner, args.repo, source_hash):
            print("Stale: source changed since last optimization.")
            return 0
        meta = cache.read_meta(args.owner, args.repo)
        mode = "deterministic" if meta.deterministic else (meta.model or "default model")
        print(
            f"Fresh: {meta.original_tokens} -> {meta.optimized_tokens} tokens "
            f"({mode}, {meta.optimized_at.isoformat()})"
        )
        return 0

    print("Unknown cache command", file=sys.stderr)
    return EXIT_ERROR


def _add_key_args(parser: argparse.ArgumentParser, *, required: bool) -> None:
    """Add the cache namespace args."""
    parser.add_argument("--owner", required=required, default="local")
    parser.add_argument("--repo", required=required, default="default")


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--cwd",
        default=None,
        help="Project directory holding .mdpress/config.toml (default: repo root)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show details")


def build_optimize_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdpress optimize",
        description="Compress a config file while preserving critical anchors",
    )
    parser.add_argument("file", nargs="?", help="Input file (default: stdin)")
    _add_key_args(parser, required=False)
    _add_common_args(parser)
    parser.add_argument(
        "--target", type=int, default=0,
        help="Target token count (0 = auto ~50%% reduction)",
    )
    parser.add_argument(
        "--deterministic", action="store_true",
        help="Only apply deterministic transforms (no API call)",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Re-optimize even if cached, and accept lost critical anchors",
    )
    parser.add_argument("--no-cache", action="store_true", help="Skip cache read/write")
    parser.add_argument("--model", default="", help="Model to use")
    parser.add_argument("--diff", action="store_true", help="Show before/after diff")
    parser.add_argument("-o", "--output", help="Write optimized content to file")
    return parser


def build_cache_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdpress cache", description="Manage cached optimizations"
    )
    subparsers = parser.add_subparsers(dest="cache_command")

    list_parser = subparsers.add_parser("list", help="Show cached optimizations")
    _add_common_args(list_parser)

    clear_parser = subparsers.add_parser("clear", help="Remove a cached optimization")
    _add_key_args(clear_parser, required=True)
    _add_common_args(clear_parser)

    status_parser = subparsers.add_parser(
        "status", help="Check whether the cache matches a source file"
    )
    status_parser.add_argument("file", nargs="?", help="Source file (default: stdin)")
    _add_key_args(status_parser, required=True)
    _add_common_args(status_parser)
    return parser


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _load_config(
    args: argparse.Namespace,
) -> mdpress.optimize.config.OptimizeConfig | None:
    root = Path(args.cwd) if args.cwd else None
    try:
        return mdpress.optimize.config.load_config(root)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return None


def main_optimize(argv: list[str] | None = None) -> int:
    args = build_optimize_parser().parse_args(argv)
    _configure_logging(args.verbose)
    cfg = _load_config(args)
    if cfg is None:
        return EXIT_ERROR
    return _cmd_optimize(args, cfg)


def main_cache(argv: list[str] | None = None) -> int:
    parser = build_cache_parser()
    args = parser.parse_args(argv)
    if not args.cache_command:
        parser.print_help()
        return EXIT_ERROR
    _configure_logging(args.verbose)
    cfg = _load_config(args)
    if cfg is None:
        return EXIT_ERROR
    return _cmd_cache(args, cfg)


if __name__ == "__main__":
    sys.exit(main_optimize())
