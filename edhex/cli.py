# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Command-line entry point: ``edhex [options] [filename]``."""

import argparse
import logging
import sys
import textwrap
from typing import List, Optional

from edhex import __version__
from edhex.config import load_config, preferences_from_config, setup_logging
from edhex.editor import HexEditor, initial_state
from edhex.errors import FatalError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edhex",
        description="Edit the bytes of a file with ed-like commands, "
                    "read interactively or piped through standard input.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=textwrap.dedent(
            """
            Examples
            --------
            edhex firmware.bin
            printf '0,1fp\\nq\\n' | edhex -q -n firmware.bin
            """,
        ),
    )
    parser.add_argument("filename", nargs="?", default="",
                        help="File to edit. Created on 'w' if it does not exist.")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Don't print prompts, the initial help line or state,\n"
                             "e.g. for clean output when piping commands in")
    parser.add_argument("-n", "--no-color", action="store_true", help="Don't color bytes")
    parser.add_argument("-R", "--readonly", action="store_true", help="Start in read-only mode")
    parser.add_argument("-v", "--version", action="version", version=__version__,
                        help="Print version")
    parser.add_argument("-c", "--core-version", action="version", version=f"edhex core {__version__}",
                        help="Print version of the core library")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parses arguments, loads configuration and runs the editor.

    Returns:
        int: The process exit code; 0 after ``q`` or end of input, the
        :class:`~edhex.errors.FatalError` code otherwise.
    """
    args = build_parser().parse_args(argv)

    config = load_config()
    setup_logging(config)
    prefs = preferences_from_config(config)
    if args.no_color:
        prefs.color = False

    try:
        state = initial_state(args.filename, prefs, readonly=args.readonly)
        state.show_prompt = not args.quiet
        editor = HexEditor(state, quiet=args.quiet)
        return editor.run()
    except FatalError as exc:
        logger.critical("%s (exit code %d)", exc, exc.exit_code)
        print(exc, file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
