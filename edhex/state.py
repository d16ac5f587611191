# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
Editor state, display preferences, and their TOML snapshot forms.

The state object is owned by the orchestration loop and handed by reference
to the search, edit and window functions; nothing else keeps a copy of it.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import toml

from edhex.errors import CommandError
from edhex.numerals import SUPPORTED_RADIXES, format_index

logger = logging.getLogger(__name__)

MAX_WIDTH = 0x10000


@dataclass
class Preferences:
    """Settings that control how operands are parsed and bytes are displayed."""

    radix: int = 16
    width: int = 16
    before_context: int = 0
    after_context: int = 0
    show_byte_numbers: bool = True
    show_chars: bool = True
    color: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: Optional["Preferences"] = None) -> "Preferences":
        """
        Builds preferences from a ``[display]`` table, starting from ``base``.

        Unknown keys are ignored so newer preference files still load.

        Raises:
            ValueError: If ``data`` is not a table, or a known key holds a value
                of the wrong type or range.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Preferences must be a table, got {data!r}")
        values = asdict(base if base is not None else cls())
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            expected = type(values[f.name])
            # bool is a subclass of int; keep the two apart.
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"'{f.name}' must be an integer, got {value!r}")
            if expected is bool and not isinstance(value, bool):
                raise ValueError(f"'{f.name}' must be true or false, got {value!r}")
            values[f.name] = value

        if values["radix"] not in SUPPORTED_RADIXES:
            raise ValueError(f"'radix' must be 10 or 16, got {values['radix']}")
        if values["width"] < 1:
            raise ValueError("Width must be positive")
        if values["width"] > MAX_WIDTH:
            raise ValueError(f"Width must be at most {MAX_WIDTH}")
        if values["before_context"] < 0 or values["after_context"] < 0:
            raise ValueError("Context must not be negative")
        return cls(**values)

    def to_mapping(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EditorState:
    """
    Everything one editing session knows.

    Attributes:
        buffer (bytearray): The bytes being edited.
        cursor_index (int): Focused byte; valid only while the buffer is non-empty.
        prefs (Preferences): Radix, width, contexts and display toggles.
        filename (str): Where ``w`` writes; empty when not yet chosen.
        last_search (Optional[bytes]): Needle reused by a bare ``/`` or ``?``.
        unsaved_changes (bool): True once the buffer differs from the file on disk.
        readonly (bool): Refuse writes to disk (in-memory edits stay allowed).
        show_prompt (bool): Print ``*`` before reading each command.
    """

    buffer: bytearray = field(default_factory=bytearray)
    cursor_index: int = 0
    prefs: Preferences = field(default_factory=Preferences)
    filename: str = ""
    last_search: Optional[bytes] = None
    unsaved_changes: bool = False
    readonly: bool = False
    show_prompt: bool = True

    # Shortcuts used throughout the core.
    @property
    def radix(self) -> int:
        return self.prefs.radix

    @property
    def width(self) -> int:
        return self.prefs.width

    def empty(self) -> bool:
        return len(self.buffer) == 0

    def max_index(self) -> Optional[int]:
        """Index of the last byte, or None for an empty buffer."""
        if not self.buffer:
            return None
        return len(self.buffer) - 1

    def require_max_index(self) -> int:
        """Like :meth:`max_index`, but raises ``CommandError("Empty file")`` instead of returning None."""
        if not self.buffer:
            raise CommandError("Empty file")
        return len(self.buffer) - 1

    def fmt(self, index: int) -> str:
        return format_index(index, self.prefs.radix)

    def describe(self) -> str:
        """Returns the multi-line summary printed by ``s``."""
        max_index = self.max_index()
        lines = [
            f"File: {self.filename or '(none)'}",
            f"Size: {self.fmt(len(self.buffer))} bytes",
            f"Index: {self.fmt(self.cursor_index) if max_index is not None else '(empty)'}"
            + (f" of {self.fmt(max_index)}" if max_index is not None else ""),
            f"Radix: {self.prefs.radix}",
            f"Width: {self.fmt(self.prefs.width)}",
            f"Before context: {self.fmt(self.prefs.before_context)}",
            f"After context: {self.fmt(self.prefs.after_context)}",
            f"Show byte numbers: {self.prefs.show_byte_numbers}",
            f"Show chars: {self.prefs.show_chars}",
            f"Color: {self.prefs.color}",
            f"Read-only: {self.readonly}",
            f"Unsaved changes: {self.unsaved_changes}",
        ]
        if self.last_search is not None:
            lines.append(f"Last search: {self.last_search.hex()}")
        return "\n".join(lines)

    # --- Snapshots (everything except the bytes) ---

    def to_snapshot(self) -> Dict[str, Any]:
        session: Dict[str, Any] = {
            "filename": self.filename,
            "index": self.cursor_index,
            "readonly": self.readonly,
            "unsaved_changes": self.unsaved_changes,
        }
        if self.last_search is not None:
            session["last_search"] = self.last_search.hex()
        return {"session": session, "display": self.prefs.to_mapping()}

    def dumps(self) -> str:
        return toml.dumps(self.to_snapshot())


def state_from_snapshot(snapshot: Mapping[str, Any], buffer: bytearray) -> EditorState:
    """
    Rebuilds an :class:`EditorState` from a snapshot and freshly loaded bytes.

    The cursor is clamped into the buffer in case the file shrank since the
    snapshot was taken.

    Raises:
        ValueError: If the snapshot is missing the session table or holds bad values.
    """
    session = snapshot.get("session")
    if not isinstance(session, Mapping):
        raise ValueError("Snapshot has no [session] table")
    filename = session.get("filename")
    if not isinstance(filename, str) or not filename:
        raise ValueError("Snapshot does not name a file")

    prefs = Preferences.from_mapping(snapshot.get("display", {}))

    index = session.get("index", 0)
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise ValueError(f"Bad index in snapshot: {index!r}")
    if buffer:
        index = min(index, len(buffer) - 1)
    else:
        index = 0

    last_search = session.get("last_search")
    if last_search is not None:
        try:
            last_search = bytes.fromhex(last_search)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Bad last_search in snapshot: {last_search!r}") from exc

    logger.debug("Rebuilt state for '%s' at index %d", filename, index)
    return EditorState(
        buffer=buffer,
        cursor_index=index,
        prefs=prefs,
        filename=filename,
        last_search=last_search or None,
        unsaved_changes=bool(session.get("unsaved_changes", False)),
        readonly=bool(session.get("readonly", False)),
    )
