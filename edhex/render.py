# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Turning a resolved byte range into text.

A row looks like this (radix 16, byte numbers and chars on)::

        10| 48 65 6c 6c 6f 0a                               |Hello.|

Colors come from :func:`pygments.console.colorize`; the glyph column uses
:func:`wcwidth.wcwidth` to keep only characters one terminal cell wide.
"""

import string
from typing import List

from pygments.console import colorize
from wcwidth import wcwidth

from edhex.numerals import format_index
from edhex.state import EditorState

MIN_NUMBER_WIDTH = 6

_ASCII_WHITESPACE = frozenset(string.whitespace.encode("ascii"))


def byte_color(value: int) -> str:
    """Names the ``pygments.console`` color used for one byte."""
    if value == 0:
        return "gray"
    if value in _ASCII_WHITESPACE:
        return "yellow"
    if 0x20 < value < 0x7f:
        return "green"
    if value < 0x80:
        return "red"
    return "cyan"


def glyph(value: int) -> str:
    """The sidebar character for a byte: its Latin-1 glyph if printable and single-width, else ``.``."""
    ch = chr(value)
    if ch.isprintable() and wcwidth(ch) == 1:
        return ch
    return "."


def _cell(value: int, radix: int) -> str:
    return f"{value:02x}" if radix == 16 else f"{value:3d}"


def render_bytes(data: bytes, start: int, width: int, show_byte_numbers: bool,
                 show_chars: bool, radix: int, color: bool) -> str:
    """
    Formats ``data``, whose first byte sits at index ``start``, as rows of ``width`` bytes.

    Args:
        data (bytes): The bytes to show.
        start (int): Absolute index of ``data[0]``; used for the byte numbers.
        width (int): Bytes per row.
        show_byte_numbers (bool): Prefix each row with the index of its first byte.
        show_chars (bool): Append the ``|glyphs|`` column.
        radix (int): 16 shows two hex digits per byte, 10 three decimal digits.
        color (bool): Wrap each byte in ANSI color codes.

    Returns:
        str: The rows joined by newlines, without a trailing newline.
    """
    if not data:
        return ""
    cell_width = 2 if radix == 16 else 3
    last_index = start + len(data) - 1
    number_width = max(MIN_NUMBER_WIDTH, len(format_index(last_index, radix)))

    rows: List[str] = []
    for offset in range(0, len(data), width):
        chunk = data[offset:offset + width]
        parts = []
        if show_byte_numbers:
            parts.append(format_index(start + offset, radix).rjust(number_width) + "|")

        cells = []
        for value in chunk:
            text = _cell(value, radix)
            cells.append(colorize(byte_color(value), text) if color else text)
        hex_column = " ".join(cells)
        missing = width - len(chunk)
        if show_chars and missing:
            hex_column += " " * (missing * (cell_width + 1))
        parts.append(hex_column)

        if show_chars:
            glyphs = []
            for value in chunk:
                ch = glyph(value)
                glyphs.append(colorize(byte_color(value), ch) if color else ch)
            parts.append("|" + "".join(glyphs) + "|")

        rows.append(" ".join(parts))
    return "\n".join(rows)


def render_range(state: EditorState, begin: int, end: int) -> str:
    """Renders the inclusive range ``begin..end`` with the state's display preferences."""
    prefs = state.prefs
    return render_bytes(
        bytes(state.buffer[begin:end + 1]),
        begin,
        prefs.width,
        prefs.show_byte_numbers,
        prefs.show_chars,
        prefs.radix,
        prefs.color,
    )
