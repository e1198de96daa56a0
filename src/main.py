#!/usr/bin/env python3

# Entry of cmdlower

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, TextIO

try:
    import readline  # type: ignore
except Exception:  # pragma: no cover - fallback when readline unavailable
    readline = None

READLINE_ACTIVE = bool(readline)

PROMPT = "cmdlower> "
MODE_ENV = "CMDLOWER_MODE"

from command import LoweringError  # local modules in the same folder
from grammar import GrammarError, parse
from groups import format_groups
from ops import Mode, lower_command_list
from reader import ReaderError, read_tokens
from terms import to_data

log = logging.getLogger("cmdlower")


def default_mode(env: Optional[dict] = None) -> Mode:
    """Mode from $CMDLOWER_MODE, falling back to interactive."""
    env = os.environ if env is None else env
    value = env.get(MODE_ENV, "").strip().lower()
    if not value:
        return Mode.INTERACTIVE
    try:
        return Mode(value)
    except ValueError:
        print(f"Warning: ignoring invalid {MODE_ENV}={value!r}", file=sys.stderr)
        return Mode.INTERACTIVE


def setup_readline() -> None:
    if not READLINE_ACTIVE:
        return
    try:
        readline.parse_and_bind("set editing-mode emacs")
    except Exception:
        pass


def render(line: str, mode: Mode, parse_only: bool = False) -> str:
    """Lower one line and return its printable form."""
    tree = parse(read_tokens(line))
    if parse_only:
        return format_groups(tree)
    return json.dumps(to_data(lower_command_list(tree, mode)), indent=2)


def process_line(line: str, mode: Mode, parse_only: bool, out: TextIO) -> int:
    try:
        out.write(render(line, mode, parse_only) + "\n")
        out.flush()
        return 0
    except (ReaderError, GrammarError, LoweringError) as e:
        print(f"cmdlower: {e}", file=sys.stderr)
        return 2


def repl(mode: Mode, parse_only: bool = False) -> int:
    interactive = sys.stdin.isatty()
    if interactive:
        setup_readline()
    status = 0
    while True:
        try:
            line = input(PROMPT) if interactive else sys.stdin.readline()
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            # Ctrl-C at prompt -> new line and continue
            print()
            continue
        if not interactive and line == "":
            break
        line = line.rstrip("\n")
        if not line.strip():
            continue
        if process_line(line, mode, parse_only, sys.stdout) != 0:
            status = 2
    return status


def parse_args(args=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="cmdlower - lower shell command lines into command terms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  cmdlower 'ls -l | grep x > out.txt'
  cmdlower -m batch 'cat f |> (upper)'
  echo 'a && b' | cmdlower --parse-only

The default mode is read from ${MODE_ENV} (interactive when unset).
"""
    )

    parser.add_argument(
        "--mode", "-m",
        choices=[m.value for m in Mode],
        help="Pipeline wiring mode (default: interactive)"
    )
    parser.add_argument(
        "--parse-only",
        action="store_true",
        help="Print the parse tree instead of the lowered term"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log lowering decisions to stderr"
    )
    parser.add_argument(
        "line",
        nargs="?",
        help="Command line to lower (read from stdin when omitted)"
    )

    return parser.parse_args(args)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )
    mode = Mode(args.mode) if args.mode else default_mode()
    log.debug("mode: %s", mode.value)
    try:
        if args.line is not None:
            status = process_line(args.line, mode, args.parse_only, sys.stdout)
        else:
            status = repl(mode, args.parse_only)
    except Exception as e:
        print(f"cmdlower: error: {e}", file=sys.stderr)
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
