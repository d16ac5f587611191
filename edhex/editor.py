# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""
The read-evaluate loop.

:class:`HexEditor` owns the :class:`~edhex.state.EditorState`, reads one
command line at a time, hands it to :func:`edhex.grammar.recognize` and
dispatches the resulting command. Every handler either applies completely or
raises before mutating anything; errors are printed as ``? (message)`` and
the loop moves on to the next line.
"""

import logging
import os
import sys
from typing import Any, Callable, Dict, Mapping, Optional, TextIO, Tuple

import toml

from edhex import commands as cmd
from edhex import edit, search, window
from edhex.commands import Command, Flag
from edhex.config import deep_merge, preferences_file_path
from edhex.errors import (
    EXIT_INPUT_ERROR,
    EXIT_NOT_REGULAR_FILE,
    EXIT_OK,
    EXIT_SIZE_MISMATCH,
    EXIT_UNREADABLE,
    CommandError,
    FatalError,
    ParseError,
)
from edhex.grammar import recognize
from edhex.render import render_range
from edhex.state import MAX_WIDTH, EditorState, Preferences, state_from_snapshot
from edhex.storage import (
    FileDoesNotExist,
    NotARegularFile,
    SizeMismatch,
    StorageError,
    WriteFailed,
    read_all_bytes,
    write_all_bytes,
)

logger = logging.getLogger(__name__)

HELP_TEXT = """\
Input/output is hex unless toggled to decimal with 'x'
h           This (h)elp
<Enter>     Print the next line of byte(s) and move there
j           (j)ump back to the previous line of byte(s) and print
3d4         Move to byte number 3d4 and print from there
+           Move 1 byte forward and print from there
+++         Move 3 bytes forward and print from there
-           Move 1 byte back and print from there
+3d4        Move 3d4 bytes forward and print from there
-3d4        Move 3d4 bytes back and print from there
$           Move to the last byte and print it
/deadbeef   If bytes de ad be ef exist at or after the current index, move there and print
?deadbeef   If bytes de ad be ef exist before the current index, move there and print
/           Repeat the last search, starting at the next byte
?           Repeat the last search backwards, starting before the current byte
k           Delete/(k)ill the byte at the current index and print
7dk         Move to byte 7d, (k)ill that byte, and print from there
1d,72k      Move to byte 1d; (k)ill bytes 1d - 72 inclusive; print from there
/deadbeef/k If bytes de ad be ef exist at or after the current index, move there,
              (k)ill those bytes, and print
i           Prompt for bytes to (i)nsert at the current index
72i         Move to byte 72; prompt for bytes to (i)nsert there
/deadbeef/i If bytes de ad be ef exist at or after the current index, move there
              and prompt for bytes to (i)nsert there
12,3dp      (p)rint bytes 12 - 3d inclusive, move to byte 12
3dp         Move to byte 3d and (p)rint a line of byte(s) with context
l           (l)oad a new file
L           (L)oad state from a file.  Fails if the file you were editing is gone
m           Toggle whether characters are printed after bytes
n           Toggle whether byte (n)umbers are printed before bytes
o           Toggle using c(o)lor
p           (p)rint the current line of byte(s) (depending on 'W')
P           Save (P)references to a file (width, color, etc.)
r           (r)ead preferences from a file
R           Toggle (R)ead-only mode
s           Print (s)tate of toggles, 'W'idth, etc.
S           (S)ave state to a file, except the bytes you're editing
t3d         Print 0x3d lines of con(t)extual bytes after the current line [Default 0]
T3d         Print 0x3d lines of con(T)extual bytes before the current line [Default 0]
u           (u)pdate the filename to write to
x           Toggle reading input and displaying output as he(x) or decimal
w           Actually (w)rite changes to the file on disk
W3d         Set (W)idth to 0x3d, i.e. print a line break every 3d bytes [Default 0x10]
q           (q)uit"""

_YES = ("y", "Y", "yes", "Yes")
_NO = ("n", "N", "no", "No")


def initial_state(filename: str, prefs: Preferences, readonly: bool = False) -> EditorState:
    """
    Builds the starting state, loading ``filename`` if it exists.

    A missing file, or no filename at all, gives an empty buffer with
    unsaved changes (nothing has been written there yet).

    Raises:
        FatalError: The path is not a regular file, its size changed while
            reading, or it could not be read.
    """
    state = EditorState(prefs=prefs, filename=filename, readonly=readonly)
    if not filename:
        state.unsaved_changes = True
        return state
    try:
        state.buffer = read_all_bytes(filename)
    except FileDoesNotExist:
        logger.info("'%s' does not exist yet; starting with an empty buffer", filename)
        state.unsaved_changes = True
    except NotARegularFile as exc:
        raise FatalError(str(exc), EXIT_NOT_REGULAR_FILE) from exc
    except SizeMismatch as exc:
        raise FatalError(str(exc), EXIT_SIZE_MISMATCH) from exc
    except StorageError as exc:
        raise FatalError(str(exc), EXIT_UNREADABLE) from exc
    return state


class HexEditor:
    """
    Runs an editing session over a line-oriented input stream.

    Attributes:
        state (EditorState): The one state object of the session.
        quiet (bool): Suppress the banner and toggle echoes.
        instream (TextIO): Where command lines (and inserted bytes) come from.
        outstream (TextIO): Where prompts, windows and errors go.

    Example:
        >>> import io
        >>> state = EditorState(buffer=bytearray(b"hi"))
        >>> state.prefs.color = False
        >>> state.prefs.show_chars = False
        >>> state.show_prompt = False
        >>> out = io.StringIO()
        >>> HexEditor(state, io.StringIO("1p\\n"), out, quiet=True).run()
        0
        >>> out.getvalue()
        '     1| 69\\n'
    """

    def __init__(self, state: EditorState, instream: Optional[TextIO] = None,
                 outstream: Optional[TextIO] = None, quiet: bool = False) -> None:
        self.state = state
        self.quiet = quiet
        self.instream = instream if instream is not None else sys.stdin
        self.outstream = outstream if outstream is not None else sys.stdout
        self.handlers = self._setup_handler_map()

    def _setup_handler_map(self) -> Dict[type, Callable[[Any], bool]]:
        """Maps each command type to the method that applies it. Handlers return False to quit."""
        return {
            cmd.MoveTo: self.handle_move_to,
            cmd.StepForward: self.handle_step_forward,
            cmd.StepBackward: self.handle_step_backward,
            cmd.NextWindow: self.handle_next_window,
            cmd.PreviousWindow: self.handle_previous_window,
            cmd.PrintWindow: self.handle_print_window,
            cmd.PrintRange: self.handle_print_range,
            cmd.Insert: self.handle_insert,
            cmd.Kill: self.handle_kill,
            cmd.SearchForward: self.handle_search,
            cmd.SearchBackward: self.handle_search,
            cmd.RepeatSearch: self.handle_repeat_search,
            cmd.SearchThenKill: self.handle_search_then_kill,
            cmd.SearchThenInsert: self.handle_search_then_insert,
            cmd.SetWidth: self.handle_set_width,
            cmd.SetBeforeContext: self.handle_set_before_context,
            cmd.SetAfterContext: self.handle_set_after_context,
            cmd.ToggleFlag: self.handle_toggle,
            cmd.Quit: self.handle_quit,
            cmd.Help: self.handle_help,
            cmd.ShowState: self.handle_show_state,
            cmd.LoadFile: self.handle_load_file,
            cmd.LoadState: self.handle_load_state,
            cmd.SaveState: self.handle_save_state,
            cmd.LoadPreferences: self.handle_load_preferences,
            cmd.SavePreferences: self.handle_save_preferences,
            cmd.UpdateFilename: self.handle_update_filename,
            cmd.Write: self.handle_write,
            cmd.Unknown: self.handle_unknown,
        }

    # --- I/O helpers ---

    def _print(self, text: str = "") -> None:
        self.outstream.write(text + "\n")

    def _print_range(self, rng: Tuple[int, int]) -> None:
        self._print(render_range(self.state, *rng))

    def read_command_line(self) -> Optional[str]:
        """
        Reads the next command line.

        Returns:
            Optional[str]: The stripped line, or None at end of input.

        Raises:
            FatalError: Reading failed (exit code ``EXIT_INPUT_ERROR``).
        """
        if self.state.show_prompt:
            self.outstream.write("*")
        self.outstream.flush()
        try:
            line = self.instream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            logger.critical("Unable to read command input: %s", exc)
            raise FatalError("Unable to read input", EXIT_INPUT_ERROR) from exc
        if not line:
            return None
        return line.strip()

    def ask(self, message: str) -> Optional[str]:
        """
        Reads one answer line for a nested prompt (bytes to insert, a filename...).

        Returns:
            Optional[str]: The stripped answer, or None at end of input.

        Raises:
            CommandError: Reading failed; only the current command is abandoned.
        """
        if self.state.show_prompt:
            self.outstream.write(message)
        self.outstream.flush()
        try:
            line = self.instream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Couldn't read input from user: %s", exc)
            raise CommandError("Couldn't read input from user") from exc
        if not line:
            return None
        return line.strip()

    def _ask_filename(self, message: str, default: str = "") -> str:
        answer = self.ask(message) or ""
        filename = answer or default
        if not filename:
            raise CommandError("No filename given")
        return filename

    # --- Loop ---

    def execute(self, line: str) -> bool:
        """
        Recognizes and applies one command line.

        Returns:
            bool: False when the command asks to quit, True otherwise.
        """
        try:
            command = recognize(line, self.state)
            return self.dispatch(command)
        except (ParseError, CommandError) as exc:
            logger.debug("Command %r failed: %s", line, exc)
            self._print(f"? ({exc})")
            return True

    def dispatch(self, command: Command) -> bool:
        handler = self.handlers.get(type(command))
        if handler is None:
            raise CommandError(f"Don't understand command {command!r}")
        return handler(command)

    def print_banner(self) -> None:
        self._print("h for help\n")
        self._print(self.state.describe())
        self._print()
        if not self.state.empty():
            self._print_range(window.current_range(self.state))

    def run(self) -> int:
        """
        Reads and applies commands until ``q`` or end of input.

        Returns:
            int: ``EXIT_OK``.

        Raises:
            FatalError: Reading a command line failed.
        """
        if not self.quiet:
            self.print_banner()
        while True:
            line = self.read_command_line()
            if line is None:
                logger.info("End of input; quitting")
                return EXIT_OK
            if not self.execute(line):
                logger.info("Quit command received")
                return EXIT_OK

    # --- Movement and printing ---

    def handle_move_to(self, command: cmd.MoveTo) -> bool:
        self._print_range(window.move_to(self.state, command.index))
        return True

    def handle_step_forward(self, command: cmd.StepForward) -> bool:
        self._print_range(window.step_forward(self.state, command.count))
        return True

    def handle_step_backward(self, command: cmd.StepBackward) -> bool:
        self._print_range(window.step_backward(self.state, command.count))
        return True

    def handle_next_window(self, command: cmd.NextWindow) -> bool:
        self._print_range(window.next_window(self.state))
        return True

    def handle_previous_window(self, command: cmd.PreviousWindow) -> bool:
        self._print_range(window.previous_window(self.state))
        return True

    def handle_print_window(self, command: cmd.PrintWindow) -> bool:
        if command.at is not None:
            window.check_range(self.state, command.at, command.at)
            self.state.cursor_index = command.at
        self._print_range(window.current_range_with_context(self.state))
        return True

    def handle_print_range(self, command: cmd.PrintRange) -> bool:
        begin, end = window.check_range(self.state, command.begin, command.end)
        self.state.cursor_index = begin
        self._print_range((begin, end))
        return True

    # --- Editing ---

    def _read_bytes_to_insert(self) -> bytes:
        answer = self.ask("> ")
        return search.encode(answer or "")

    def _insert_at(self, at: int) -> None:
        edit.check_not_negative(at)
        if at > len(self.state.buffer):
            raise CommandError("bad range")
        new_bytes = self._read_bytes_to_insert()
        edit.insert(self.state, at, new_bytes)
        if new_bytes:
            self._print_range(window.current_range(self.state))

    def _print_after_kill(self) -> None:
        if not self.state.empty():
            self._print_range(window.current_range_with_context(self.state))

    def handle_insert(self, command: cmd.Insert) -> bool:
        self._insert_at(command.at)
        return True

    def handle_kill(self, command: cmd.Kill) -> bool:
        edit.kill(self.state, command.begin, command.end)
        self._print_after_kill()
        return True

    # --- Searching ---

    def handle_search(self, command: Any) -> bool:
        forward = isinstance(command, cmd.SearchForward)
        search.search(self.state, command.needle, forward)
        self._print_range(window.current_range_with_context(self.state))
        return True

    def handle_repeat_search(self, command: cmd.RepeatSearch) -> bool:
        search.repeat_search(self.state, command.forward)
        self._print_range(window.current_range_with_context(self.state))
        return True

    def handle_search_then_kill(self, command: cmd.SearchThenKill) -> bool:
        begin, end = search.match_range(self.state, command.needle)
        edit.kill(self.state, begin, end)
        self._print_after_kill()
        return True

    def handle_search_then_insert(self, command: cmd.SearchThenInsert) -> bool:
        at = search.find_from_cursor(self.state, command.needle, forward=True)
        self._insert_at(at)
        return True

    # --- Settings ---

    def handle_set_width(self, command: cmd.SetWidth) -> bool:
        if command.width < 1:
            raise CommandError("Width must be positive")
        if command.width > MAX_WIDTH:
            raise CommandError(f"Width must be at most {self.state.fmt(MAX_WIDTH)}")
        self.state.prefs.width = command.width
        return True

    def handle_set_before_context(self, command: cmd.SetBeforeContext) -> bool:
        self.state.prefs.before_context = command.count
        return True

    def handle_set_after_context(self, command: cmd.SetAfterContext) -> bool:
        self.state.prefs.after_context = command.count
        return True

    def handle_toggle(self, command: cmd.ToggleFlag) -> bool:
        prefs = self.state.prefs
        if command.which is Flag.READONLY:
            self.state.readonly = not self.state.readonly
            return True
        if command.which is Flag.RADIX:
            prefs.radix = 10 if prefs.radix == 16 else 16
            return True

        # The display toggles echo their new value.
        if command.which is Flag.SHOW_CHARS:
            prefs.show_chars = not prefs.show_chars
            value = prefs.show_chars
        elif command.which is Flag.SHOW_BYTE_NUMBERS:
            prefs.show_byte_numbers = not prefs.show_byte_numbers
            value = prefs.show_byte_numbers
        else:
            prefs.color = not prefs.color
            value = prefs.color
        if not self.quiet:
            self._print(str(value).lower())
        return True

    # --- Session ---

    def handle_quit(self, command: cmd.Quit) -> bool:
        return False

    def handle_help(self, command: cmd.Help) -> bool:
        self._print(HELP_TEXT)
        return True

    def handle_show_state(self, command: cmd.ShowState) -> bool:
        self._print(self.state.describe())
        return True

    def handle_unknown(self, command: cmd.Unknown) -> bool:
        raise CommandError(f"Don't understand command '{command.letter}'")

    def _confirm_discard(self) -> bool:
        """Asks before throwing away unsaved changes. End of input counts as no."""
        prompt = "You have unsaved changes.  Carry on? (y/n): "
        while True:
            self._print(prompt)
            answer = self.ask("")
            if answer is None or answer in _NO:
                return False
            if answer in _YES:
                return True

    def handle_load_file(self, command: cmd.LoadFile) -> bool:
        if self.state.unsaved_changes and not self._confirm_discard():
            return True
        filename = self._ask_filename("Enter filename from which to load bytes: ")
        try:
            new_bytes = read_all_bytes(filename)
        except FileDoesNotExist as exc:
            raise CommandError(f"{filename} does not exist.  Use 'u' to just change filename") from exc
        except StorageError as exc:
            raise CommandError(str(exc)) from exc
        self.state.buffer = new_bytes
        self.state.filename = filename
        self.state.cursor_index = 0
        self.state.unsaved_changes = False
        logger.info("Loaded %d bytes from '%s'", len(new_bytes), filename)
        return True

    def handle_load_state(self, command: cmd.LoadState) -> bool:
        filename = self._ask_filename("Enter filename from which to load state: ")
        try:
            with open(filename, "r", encoding="utf-8") as fh:
                snapshot = toml.loads(fh.read())
        except (OSError, toml.TomlDecodeError) as exc:
            raise CommandError(f"Couldn't read state from {filename}: {exc}") from exc

        session = snapshot.get("session")
        if not isinstance(session, Mapping):
            raise CommandError("Snapshot has no [session] table")
        bytes_file = session.get("filename")
        if not isinstance(bytes_file, str) or not bytes_file:
            raise CommandError("Snapshot does not name a file")
        try:
            buffer = read_all_bytes(bytes_file)
            new_state = state_from_snapshot(snapshot, buffer)
        except (StorageError, ValueError) as exc:
            raise CommandError(str(exc)) from exc

        new_state.show_prompt = self.state.show_prompt
        self.state = new_state
        logger.info("Loaded state from '%s' (editing '%s')", filename, new_state.filename)
        return True

    def handle_save_state(self, command: cmd.SaveState) -> bool:
        filename = self._ask_filename("Enter filename to save state: ")
        try:
            with open(filename, "w", encoding="utf-8") as fh:
                fh.write(self.state.dumps())
        except OSError as exc:
            logger.error("Failed to save state to '%s': %s", filename, exc)
            raise CommandError(f"Couldn't write state to {filename}") from exc
        return True

    def handle_load_preferences(self, command: cmd.LoadPreferences) -> bool:
        default = preferences_file_path()
        filename = self._ask_filename(f"Enter filename from which to load preferences [{default}]: ", default)
        try:
            with open(filename, "r", encoding="utf-8") as fh:
                data = toml.loads(fh.read())
            prefs = Preferences.from_mapping(data.get("display", {}))
        except (OSError, toml.TomlDecodeError, ValueError) as exc:
            raise CommandError(f"Couldn't read preferences from {filename}: {exc}") from exc
        self.state.prefs = prefs
        return True

    def handle_save_preferences(self, command: cmd.SavePreferences) -> bool:
        default = preferences_file_path()
        filename = self._ask_filename(f"Enter filename to save preferences [{default}]: ", default)
        if filename == default:
            try:
                os.makedirs(os.path.dirname(default), exist_ok=True)
            except OSError as exc:
                raise CommandError(f"Couldn't create directory {os.path.dirname(default)} ({exc})") from exc

        # Keep any other tables (e.g. [logging]) already in the file.
        existing: Dict[str, Any] = {}
        if os.path.exists(filename):
            try:
                with open(filename, "r", encoding="utf-8") as fh:
                    existing = toml.loads(fh.read())
            except (OSError, toml.TomlDecodeError) as exc:
                logger.warning("Overwriting unreadable preferences file '%s': %s", filename, exc)
        merged = deep_merge(existing, {"display": self.state.prefs.to_mapping()})
        try:
            with open(filename, "w", encoding="utf-8") as fh:
                fh.write(toml.dumps(merged))
        except OSError as exc:
            logger.error("Failed to save preferences to '%s': %s", filename, exc)
            raise CommandError(f"Couldn't write preferences to {filename}") from exc
        return True

    def handle_update_filename(self, command: cmd.UpdateFilename) -> bool:
        self.state.filename = self._ask_filename("Enter new filename: ")
        # Nothing has been written to the new name yet.
        self.state.unsaved_changes = True
        return True

    def handle_write(self, command: cmd.Write) -> bool:
        if self.state.readonly:
            raise CommandError("Read-only mode")
        new_name = ""
        filename = self.state.filename
        if not filename:
            filename = new_name = self._ask_filename("Enter filename: ")
        try:
            write_all_bytes(filename, bytes(self.state.buffer))
        except WriteFailed as exc:
            raise CommandError(str(exc)) from exc
        if new_name:
            self.state.filename = new_name
            self._print(f"Write successful, changing filename to '{new_name}'")
        self.state.unsaved_changes = False
        return True
