"""mdpress CLI: compress assistant config files without losing anchors.

Usage:
    mdpress optimize [FILE] [opts]  Compress a config file (see --help)
    mdpress cache <cmd>             List, inspect, or clear cached results
    mdpress config <cmd>            Configuration (get/set/list/show/edit)
"""

from __future__ import annotations

import sys


def _cmd_optimize(args: list[str]) -> int:
    import mdpress.optimize.__main__

    return mdpress.optimize.__main__.main_optimize(args)


def _cmd_cache(args: list[str]) -> int:
    import mdpress.optimize.__main__

    return mdpress.optimize.__main__.main_cache(args)


def _cmd_config(args: list[str]) -> int:
    import mdpress.config_cli

    return mdpress.config_cli.main(args)


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd == "optimize":
        sys.exit(_cmd_optimize(rest))
    elif cmd == "cache":
        sys.exit(_cmd_cache(rest))
    elif cmd == "config":
        sys.exit(_cmd_config(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
