# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Typed command variants produced by the grammar recognizer.

Each semantic operation is its own frozen dataclass so dispatch can match on
the type and read typed payloads (index, range, needle, count) directly.
``Command`` is the union of all of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class Flag(Enum):
    """Editor toggles, keyed by the command letter that flips them."""

    SHOW_CHARS = "m"
    SHOW_BYTE_NUMBERS = "n"
    COLOR = "o"
    READONLY = "R"
    RADIX = "x"


# --- Cursor movement and printing ---

@dataclass(frozen=True, slots=True)
class MoveTo:
    """Move to ``index`` and print a window there; ``index`` may be negative after an offset underflow."""

    index: int


@dataclass(frozen=True, slots=True)
class StepForward:
    count: int


@dataclass(frozen=True, slots=True)
class StepBackward:
    count: int


@dataclass(frozen=True, slots=True)
class NextWindow:
    """Enter on a blank line: advance one window."""


@dataclass(frozen=True, slots=True)
class PreviousWindow:
    """``j``: go back one window, saturating at byte 0."""


@dataclass(frozen=True, slots=True)
class PrintWindow:
    """
    Print one window with context.

    ``at`` is None for a bare ``p`` (print where the cursor is) and an index
    for ``<index>p`` (move there first, then print).
    """

    at: Optional[int] = None


@dataclass(frozen=True, slots=True)
class PrintRange:
    begin: int
    end: int
    args: Tuple[str, ...] = ()


# --- Editing ---

@dataclass(frozen=True, slots=True)
class Insert:
    at: int


@dataclass(frozen=True, slots=True)
class Kill:
    begin: int
    end: int
    args: Tuple[str, ...] = ()


# --- Searching ---

@dataclass(frozen=True, slots=True)
class SearchForward:
    needle: bytes


@dataclass(frozen=True, slots=True)
class SearchBackward:
    needle: bytes


@dataclass(frozen=True, slots=True)
class RepeatSearch:
    forward: bool


@dataclass(frozen=True, slots=True)
class SearchThenKill:
    needle: bytes


@dataclass(frozen=True, slots=True)
class SearchThenInsert:
    needle: bytes


# --- Settings ---

@dataclass(frozen=True, slots=True)
class SetWidth:
    width: int


@dataclass(frozen=True, slots=True)
class SetBeforeContext:
    count: int


@dataclass(frozen=True, slots=True)
class SetAfterContext:
    count: int


@dataclass(frozen=True, slots=True)
class ToggleFlag:
    which: Flag


# --- Session ---

@dataclass(frozen=True, slots=True)
class Quit:
    pass


@dataclass(frozen=True, slots=True)
class Help:
    pass


@dataclass(frozen=True, slots=True)
class ShowState:
    pass


@dataclass(frozen=True, slots=True)
class LoadFile:
    pass


@dataclass(frozen=True, slots=True)
class LoadState:
    pass


@dataclass(frozen=True, slots=True)
class SaveState:
    pass


@dataclass(frozen=True, slots=True)
class LoadPreferences:
    pass


@dataclass(frozen=True, slots=True)
class SavePreferences:
    pass


@dataclass(frozen=True, slots=True)
class UpdateFilename:
    pass


@dataclass(frozen=True, slots=True)
class Write:
    pass


@dataclass(frozen=True, slots=True)
class Unknown:
    """A command letter after an index or range that no operation accepts."""

    letter: str


Command = Union[
    MoveTo, StepForward, StepBackward, NextWindow, PreviousWindow,
    PrintWindow, PrintRange, Insert, Kill,
    SearchForward, SearchBackward, RepeatSearch, SearchThenKill, SearchThenInsert,
    SetWidth, SetBeforeContext, SetAfterContext, ToggleFlag,
    Quit, Help, ShowState, LoadFile, LoadState, SaveState,
    LoadPreferences, SavePreferences, UpdateFilename, Write, Unknown,
]
