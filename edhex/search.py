# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Literal byte-sequence search.

Needles are typed as hex digits (``/deadbeef``). The search functions return
absolute offsets into the buffer; the ``find_*`` helpers apply the cursor
conventions of the search commands and raise ``"<needle> not found"`` on a miss.
"""

import logging
import string
from typing import Optional

from edhex.errors import CommandError, ParseError
from edhex.state import EditorState

logger = logging.getLogger(__name__)

_HEX = frozenset(string.hexdigits)


def encode(hex_text: str) -> bytes:
    """
    Converts hex digit pairs to bytes, ignoring whitespace.

    Raises:
        ParseError: On a non-hex character or an odd number of digits.

    Example:
        >>> encode("de ad BE ef")
        b'\\xde\\xad\\xbe\\xef'
    """
    digits = "".join(hex_text.split())
    if any(ch not in _HEX for ch in digits):
        raise ParseError(f"'{hex_text}' isn't a hex string")
    if len(digits) % 2:
        raise ParseError(f"Odd number of hex digits in '{hex_text}'")
    return bytes.fromhex(digits)


def search_forward(buffer: bytes, start: int, needle: bytes) -> Optional[int]:
    """Leftmost occurrence of ``needle`` at or after ``start``."""
    if not needle or start < 0 or start > len(buffer):
        return None
    offset = buffer.find(needle, start)
    return None if offset < 0 else offset


def search_backward(buffer: bytes, end: int, needle: bytes) -> Optional[int]:
    """Start offset of the rightmost occurrence lying entirely before ``end``."""
    if not needle or end <= 0:
        return None
    offset = buffer.rfind(needle, 0, min(end, len(buffer)))
    return None if offset < 0 else offset


def _not_found(needle: bytes) -> CommandError:
    return CommandError(f"{needle.hex()} not found")


def find_from_cursor(state: EditorState, needle: bytes, forward: bool, repeat: bool = False) -> int:
    """
    Finds ``needle`` relative to the cursor and returns the match offset.

    Forward searches include the cursor byte unless ``repeat`` is set, in
    which case they start one byte later so the current match is skipped.
    Backward searches always look strictly before the cursor.

    Raises:
        CommandError: ``"Empty file"`` or ``"<hex> not found"``.
    """
    state.require_max_index()
    if forward:
        start = state.cursor_index + 1 if repeat else state.cursor_index
        offset = search_forward(state.buffer, start, needle)
    else:
        offset = search_backward(state.buffer, state.cursor_index, needle)
    if offset is None:
        logger.debug("Search for %s from %d (forward=%s) missed", needle.hex(), state.cursor_index, forward)
        raise _not_found(needle)
    return offset


def search(state: EditorState, needle: bytes, forward: bool) -> int:
    """Runs ``/hex`` or ``?hex``: remembers the needle, then moves the cursor to the match."""
    state.require_max_index()
    # Remembered even on a miss so a bare '/' retries it.
    state.last_search = needle
    offset = find_from_cursor(state, needle, forward)
    state.cursor_index = offset
    return offset


def repeat_search(state: EditorState, forward: bool) -> int:
    """Runs a bare ``/`` or ``?`` with the remembered needle."""
    state.require_max_index()
    if state.last_search is None:
        raise CommandError("No previous search.")
    offset = find_from_cursor(state, state.last_search, forward, repeat=True)
    state.cursor_index = offset
    return offset


def match_range(state: EditorState, needle: bytes) -> tuple[int, int]:
    """Inclusive range covered by the next match at or after the cursor (for ``/hex/k``)."""
    if not needle:
        raise ParseError("Searching for empty string")
    start = find_from_cursor(state, needle, forward=True)
    return start, start + len(needle) - 1
