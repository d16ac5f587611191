# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Error hierarchy and process exit codes for edhex.

Two non-fatal tiers are reported to the user as ``? (message)`` and leave the
editor state untouched:

- :class:`ParseError` for input lines that cannot be turned into a command.
- :class:`CommandError` for commands that parse but cannot be applied.

:class:`FatalError` is the only exception allowed to end the process; it
carries the exit code the command-line front end returns.
"""

from typing import Final

EXIT_OK: Final = 0
EXIT_NOT_REGULAR_FILE: Final = 1
EXIT_INPUT_ERROR: Final = 3
EXIT_SIZE_MISMATCH: Final = 4
EXIT_UNREADABLE: Final = 5


class EdhexError(Exception):
    """Base class for every error raised by edhex."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ParseError(EdhexError):
    """The input line does not match any command shape, or an operand is malformed."""


class CommandError(EdhexError):
    """A well-formed command could not be applied to the current state."""


class FatalError(EdhexError):
    """An unrecoverable condition; the process exits with ``exit_code``."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code
