# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Command grammar recognizer.

``recognize(line, state)`` turns one input line into exactly one
:mod:`edhex.commands` variant. Each command shape has its own ``_try_*``
function that returns None when the line is not of that shape, returns a
command when it is, and raises when it is but the operands are bad. The
shapes are tried in the order of :data:`SHAPES` and the first one that
claims the line wins:

1. blank line                     Enter, next window
2. ``+++`` / ``---``              step forward / back by the run length
3. ``/hex/k``, ``/hex/i``, ``/hex``, ``?hex``, ``/``, ``?``
4. a command letter               trailing text ignored
5. ``W<n>``, ``T<n>``, ``t<n>``   width and context
6. ``<begin>,<end><cmd>``         range commands
7. ``<index><cmd>``               index commands
8. ``+<n><cmd>`` / ``-<n><cmd>``  offset from the cursor

Anything else is ``Unable to parse '<line>'``.
"""

import logging
import string
import unicodedata
from typing import Callable, Optional, Tuple

from edhex import commands as cmd
from edhex.commands import Command, Flag
from edhex.errors import CommandError, ParseError
from edhex.numerals import TOKEN_CHARS, parse_number, resolve
from edhex.search import encode
from edhex.state import EditorState

logger = logging.getLogger(__name__)

_HEX = frozenset(string.hexdigits)

# Letters that form a complete command on their own. 'p', 'i' and 'k'
# depend on the cursor and are handled separately.
_LETTER_COMMANDS = {
    "h": cmd.Help,
    "j": cmd.PreviousWindow,
    "q": cmd.Quit,
    "s": cmd.ShowState,
    "l": cmd.LoadFile,
    "L": cmd.LoadState,
    "r": cmd.LoadPreferences,
    "P": cmd.SavePreferences,
    "S": cmd.SaveState,
    "u": cmd.UpdateFilename,
    "w": cmd.Write,
}
_TOGGLES = {flag.value: flag for flag in Flag}
COMMAND_LETTERS = frozenset(_LETTER_COMMANDS) | frozenset(_TOGGLES) | {"p", "i", "k"}


def num_graphemes(text: str) -> int:
    """Counts user-perceived characters: combining marks attach to the character before them."""
    return sum(1 for ch in text if not unicodedata.combining(ch))


def _take(text: str, allowed: frozenset) -> Tuple[str, str]:
    """Splits ``text`` into its longest prefix made of ``allowed`` characters and the remainder."""
    end = 0
    while end < len(text) and text[end] in allowed:
        end += 1
    return text[:end], text[end:]


def _is_hex(text: str) -> bool:
    return bool(text) and all(ch in _HEX for ch in text)


# --- Shapes, in precedence order ---

def _try_blank(text: str, state: EditorState) -> Optional[Command]:
    if not text:
        return cmd.NextWindow()
    return None


def _try_runs(text: str, state: EditorState) -> Optional[Command]:
    if set(text) == {"+"}:
        return cmd.StepForward(num_graphemes(text))
    if set(text) == {"-"}:
        return cmd.StepBackward(num_graphemes(text))
    return None


def _try_search(text: str, state: EditorState) -> Optional[Command]:
    direction, body = text[0], text[1:].strip()
    if direction not in "/?":
        return None

    if direction == "/" and body[-2:] in ("/k", "/i"):
        hex_text = body[:-2].strip()
        if hex_text and not _is_hex(hex_text):
            return None
        needle = encode(hex_text)
        if not needle:
            raise ParseError("Searching for empty string")
        if body.endswith("k"):
            return cmd.SearchThenKill(needle)
        return cmd.SearchThenInsert(needle)

    if not body:
        return cmd.RepeatSearch(forward=direction == "/")
    if _is_hex(body):
        needle = encode(body)
        return cmd.SearchForward(needle) if direction == "/" else cmd.SearchBackward(needle)
    return None


def _try_letter(text: str, state: EditorState) -> Optional[Command]:
    letter = text[0]
    if letter not in COMMAND_LETTERS:
        return None
    if letter == "p":
        return cmd.PrintWindow()
    if letter == "i":
        return cmd.Insert(state.cursor_index)
    if letter == "k":
        return cmd.Kill(state.cursor_index, state.cursor_index)
    if letter in _TOGGLES:
        return cmd.ToggleFlag(_TOGGLES[letter])
    return _LETTER_COMMANDS[letter]()


def _try_setting(text: str, state: EditorState) -> Optional[Command]:
    letter, operand = text[0], text[1:].strip()
    if letter not in "WTt" or not _is_hex(operand):
        return None
    value = parse_number(operand, state.radix)
    if letter == "W":
        if value == 0:
            raise ParseError("Width must be positive")
        return cmd.SetWidth(value)
    if letter == "T":
        return cmd.SetBeforeContext(value)
    return cmd.SetAfterContext(value)


def _try_range(text: str, state: EditorState) -> Optional[Command]:
    first, rest = _take(text, TOKEN_CHARS)
    rest = rest.lstrip()
    if not first or not rest.startswith(","):
        return None
    second, rest = _take(rest[1:].lstrip(), TOKEN_CHARS)
    if not second:
        return None

    max_index = state.require_max_index()
    begin = resolve(first, state.cursor_index, max_index, state.radix)
    end = resolve(second, state.cursor_index, max_index, state.radix)

    rest = rest.strip()
    if not rest:
        raise ParseError("No arguments given")
    letter, args = rest[0], tuple(rest[1:].split())
    if letter not in "kp":
        return cmd.Unknown(letter)
    if begin > end or end > max_index:
        raise CommandError("bad range")
    if letter == "k":
        return cmd.Kill(begin, end, args)
    return cmd.PrintRange(begin, end, args)


def _indexed(index: int, rest: str, max_index: Optional[int]) -> Command:
    """
    Picks the command for ``<index><rest>`` once the index is known.

    ``k`` and ``p`` past the last byte are rejected here. A negative index
    is left for the command to reject as an underflow.
    """
    rest = rest.strip()
    if not rest:
        return cmd.MoveTo(index)
    letter = rest[0]
    if letter in "kp" and max_index is not None and index > max_index:
        raise CommandError("bad range")
    if letter == "p":
        return cmd.PrintWindow(at=index)
    if letter == "k":
        return cmd.Kill(index, index, tuple(rest[1:].split()))
    if letter == "i":
        return cmd.Insert(index)
    return cmd.Unknown(letter)


def _try_index(text: str, state: EditorState) -> Optional[Command]:
    token, rest = _take(text, TOKEN_CHARS)
    if not token:
        return None
    max_index = state.require_max_index()
    return _indexed(resolve(token, state.cursor_index, max_index, state.radix), rest, max_index)


def _try_offset(text: str, state: EditorState) -> Optional[Command]:
    sign = text[0]
    if sign not in "+-":
        return None
    digits, rest = _take(text[1:], _HEX)
    if not digits:
        return None
    offset = parse_number(digits, state.radix)
    # A negative target is kept as-is and rejected when the command is applied.
    target = state.cursor_index + offset if sign == "+" else state.cursor_index - offset
    return _indexed(target, rest, state.max_index())


Shape = Callable[[str, EditorState], Optional[Command]]

SHAPES: Tuple[Shape, ...] = (
    _try_blank,
    _try_runs,
    _try_search,
    _try_letter,
    _try_setting,
    _try_range,
    _try_index,
    _try_offset,
)


def recognize(line: str, state: EditorState) -> Command:
    """
    Classifies one input line.

    Args:
        line (str): The raw line; surrounding whitespace is ignored.
        state (EditorState): Supplies cursor, last index and radix. Not modified.

    Returns:
        Command: The first shape in :data:`SHAPES` that claims the line.

    Raises:
        ParseError: The line matches no shape, or a matching shape has bad operands.
        CommandError: The shape needs a non-empty buffer (``"Empty file"``) or
            names a range that cannot exist (``"bad range"``).

    Example:
        >>> recognize("1d,72k", EditorState(buffer=bytearray(200)))
        Kill(begin=29, end=114, args=())
    """
    text = line.strip()
    for shape in SHAPES:
        command = shape(text, state)
        if command is not None:
            logger.debug("Recognized %r as %r", text, command)
            return command
    raise ParseError(f"Unable to parse '{text}'")
