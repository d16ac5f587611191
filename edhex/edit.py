# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Insert and kill: the only operations that change the bytes of the buffer."""

import logging

from edhex.errors import CommandError
from edhex.state import EditorState

logger = logging.getLogger(__name__)

UNDERFLOW_MESSAGE = "Offset would take you beyond the 0th byte"


def check_not_negative(*indices: int) -> None:
    """Rejects indices that came from a ``-<offset>`` past byte 0."""
    if any(index < 0 for index in indices):
        raise CommandError(UNDERFLOW_MESSAGE)


def insert(state: EditorState, at: int, new_bytes: bytes) -> None:
    """
    Splices ``new_bytes`` into the buffer so the first of them lands at ``at``.

    ``at`` may equal ``len(buffer)`` to append. The cursor moves to ``at``,
    the start of the inserted bytes. Inserting nothing leaves the state alone.
    Read-only mode does not block this; it only guards writes to disk.

    Raises:
        CommandError: ``"bad range"`` if ``at`` is outside ``0..len(buffer)``.
    """
    check_not_negative(at)
    if at > len(state.buffer):
        raise CommandError("bad range")
    if not new_bytes:
        logger.debug("Insert at %d with no bytes; nothing to do", at)
        return
    state.buffer[at:at] = new_bytes
    state.cursor_index = at
    state.unsaved_changes = True
    logger.debug("Inserted %d byte(s) at %d", len(new_bytes), at)


def kill(state: EditorState, begin: int, end: int) -> None:
    """
    Removes the inclusive range ``begin..end`` from the buffer.

    The cursor moves to ``begin``, or to the new last byte when the killed
    range was the tail of the buffer.

    Raises:
        CommandError: ``"Empty file"`` on an empty buffer, ``"bad range"``
            unless ``begin <= end <= max_index``.
    """
    max_index = state.require_max_index()
    check_not_negative(begin, end)
    if begin > end or end > max_index:
        raise CommandError("bad range")
    del state.buffer[begin:end + 1]
    state.cursor_index = min(begin, max(len(state.buffer) - 1, 0))
    state.unsaved_changes = True
    logger.debug("Killed bytes %d..%d; %d byte(s) left", begin, end, len(state.buffer))
