# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Window resolution and cursor stepping.

Every function here works purely on indices. What gets printed for a range
is decided by :mod:`edhex.render`.
"""

from typing import Tuple

from edhex.edit import check_not_negative
from edhex.errors import CommandError
from edhex.state import EditorState

Range = Tuple[int, int]


def primary_range(cursor: int, width: int, max_index: int) -> Range:
    """The window starting at ``cursor``, cut short at the last byte."""
    return cursor, min(cursor + width - 1, max_index)


def expanded_range(primary: Range, before_context: int, after_context: int,
                   width: int, max_index: int) -> Range:
    """
    Grows ``primary`` by whole windows of context on each side.

    Example:
        >>> expanded_range((8, 11), 1, 0, 4, 19)
        (4, 11)
    """
    begin, end = primary
    return (max(begin - before_context * width, 0),
            min(end + after_context * width, max_index))


def current_range(state: EditorState) -> Range:
    """Primary range at the cursor. Raises ``"Empty file"`` on an empty buffer."""
    max_index = state.require_max_index()
    return primary_range(state.cursor_index, state.width, max_index)


def current_range_with_context(state: EditorState) -> Range:
    max_index = state.require_max_index()
    return expanded_range(current_range(state), state.prefs.before_context,
                          state.prefs.after_context, state.width, max_index)


def move_to(state: EditorState, index: int) -> Range:
    """Moves the cursor to ``index`` and returns the window to print there."""
    max_index = state.require_max_index()
    check_not_negative(index)
    if index > max_index:
        raise CommandError(f"Index {state.fmt(index)} is past the last byte at {state.fmt(max_index)}")
    state.cursor_index = index
    return current_range_with_context(state)


def next_window(state: EditorState) -> Range:
    """Enter: advance the cursor by one width unless the last byte is already showing."""
    max_index = state.require_max_index()
    first = state.cursor_index + state.width
    if first > max_index:
        raise CommandError(f"already showing last byte at index {state.fmt(max_index)}")
    state.cursor_index = first
    return current_range_with_context(state)


def previous_window(state: EditorState) -> Range:
    """``j``: go back one width, stopping at byte 0."""
    state.require_max_index()
    state.cursor_index = max(state.cursor_index - state.width, 0)
    return current_range_with_context(state)


def step_forward(state: EditorState, count: int) -> Range:
    max_index = state.require_max_index()
    if state.cursor_index == max_index:
        raise CommandError("already at last byte")
    if state.cursor_index + count > max_index:
        raise CommandError(f"Moving {count} bytes would put you past last byte")
    state.cursor_index += count
    return current_range_with_context(state)


def step_backward(state: EditorState, count: int) -> Range:
    state.require_max_index()
    if state.cursor_index == 0:
        raise CommandError("already at 0th byte")
    if state.cursor_index < count:
        raise CommandError(f"Going back {count} bytes would take you beyond the 0th byte")
    state.cursor_index -= count
    return current_range_with_context(state)


def check_range(state: EditorState, begin: int, end: int) -> Range:
    """Validates an explicit inclusive range against the buffer as it is now."""
    max_index = state.require_max_index()
    check_not_negative(begin, end)
    if begin > end or end > max_index:
        raise CommandError("bad range")
    return begin, end
