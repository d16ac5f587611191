import io
import os
import stat
import tempfile
import unittest
from unittest import mock

from edhex.editor import HexEditor, initial_state
from edhex.errors import (
    EXIT_INPUT_ERROR,
    EXIT_NOT_REGULAR_FILE,
    EXIT_OK,
    EXIT_SIZE_MISMATCH,
    EXIT_UNREADABLE,
    FatalError,
)
from edhex.state import EditorState, Preferences
from edhex.storage import ReadFailed


def make_editor(script, data=b"", filename="", cursor=0, quiet=True, **prefs):
    """An editor reading ``script`` with plain, prompt-free output."""
    settings = {"color": False, "show_chars": False}
    settings.update(prefs)
    state = EditorState(buffer=bytearray(data), cursor_index=cursor,
                        prefs=Preferences(**settings), filename=filename)
    state.show_prompt = False
    out = io.StringIO()
    return HexEditor(state, io.StringIO(script), out, quiet=quiet), out


def run_session(script, data=b"", **kwargs):
    editor, out = make_editor(script, data, **kwargs)
    code = editor.run()
    return editor, out.getvalue(), code


class TestSessions(unittest.TestCase):

    def test_search_then_repeat(self):
        editor, output, code = run_session("/dead\n/\n", bytes.fromhex("deadbeef00dead"))
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(output, "     0| de ad be ef 00 de ad\n     5| de ad\n")
        self.assertEqual(editor.state.cursor_index, 5)

    def test_kill_range(self):
        editor, output, _ = run_session("1,2k\n", b"\x01\x02\x03\x04")
        self.assertEqual(editor.state.buffer, bytearray(b"\x01\x04"))
        self.assertEqual(editor.state.cursor_index, 1)
        self.assertTrue(editor.state.unsaved_changes)
        self.assertEqual(output, "     1| 04\n")

    def test_offsets(self):
        editor, output, _ = run_session("+5p\n", bytes(0x20), cursor=0x10)
        self.assertEqual(editor.state.cursor_index, 0x15)
        self.assertTrue(output.startswith("    15| 00"))

    def test_offset_underflow(self):
        editor, output, _ = run_session("-5p\n", bytes(0x20), cursor=2)
        self.assertEqual(output, "? (Offset would take you beyond the 0th byte)\n")
        self.assertEqual(editor.state.cursor_index, 2)

    def test_print_window_with_context_at_index(self):
        editor, output, _ = run_session("8p\n", bytes(range(20)), width=4, before_context=1)
        self.assertEqual(output, "     4| 04 05 06 07\n     8| 08 09 0a 0b\n")
        self.assertEqual(editor.state.cursor_index, 8)

    def test_print_range_moves_to_start(self):
        editor, output, _ = run_session("2,5p\n", bytes(range(20)), width=4)
        self.assertEqual(output, "     2| 02 03 04 05\n")
        self.assertEqual(editor.state.cursor_index, 2)

    def test_enter_pages_until_last_byte(self):
        editor, output, _ = run_session("\n\n", bytes(range(20)))
        self.assertEqual(output.splitlines(), [
            "    10| 10 11 12 13",
            "? (already showing last byte at index 13)",
        ])
        self.assertEqual(editor.state.cursor_index, 0x10)

    def test_previous_window_and_steps(self):
        editor, output, _ = run_session("j\n++\n-\n", bytes(range(20)), cursor=6, width=4)
        self.assertEqual(output.splitlines(), [
            "     2| 02 03 04 05",
            "     4| 04 05 06 07",
            "     3| 03 04 05 06",
        ])

    def test_empty_buffer_commands_fail(self):
        script = "$\n1,2p\n/dead\n/\nk\n5\np\n+\n-\n\nj\n"
        editor, output, _ = run_session(script)
        self.assertEqual(output.splitlines(), ["? (Empty file)"] * 11)
        self.assertEqual(len(editor.state.buffer), 0)
        self.assertEqual(editor.state.cursor_index, 0)
        self.assertIsNone(editor.state.last_search)

    def test_toggles_twice_restore_everything(self):
        data = bytes(range(8))
        editor, output, _ = run_session("m\nm\nn\nn\no\no\nR\nR\nx\nx\n", data)
        self.assertEqual(editor.state.prefs, Preferences(color=False, show_chars=False))
        self.assertFalse(editor.state.readonly)
        self.assertEqual(editor.state.buffer, bytearray(data))
        self.assertEqual(output, "")

    def test_toggles_echo_when_not_quiet(self):
        editor, out = make_editor("", b"\x00", quiet=False)
        editor.execute("x")
        editor.execute("R")
        editor.execute("o")
        editor.execute("m")
        self.assertEqual(out.getvalue(), "true\ntrue\n")
        self.assertEqual(editor.state.radix, 10)
        self.assertTrue(editor.state.readonly)

    def test_settings(self):
        editor, output, _ = run_session("W8\nT2\nt3\nW0\n", b"\x00")
        self.assertEqual(editor.state.width, 8)
        self.assertEqual(editor.state.prefs.before_context, 2)
        self.assertEqual(editor.state.prefs.after_context, 3)
        self.assertEqual(output, "? (Width must be positive)\n")

    def test_width_limit(self):
        editor, output, _ = run_session("W40000000\nW10000\n", b"\x00\x01")
        self.assertEqual(output, "? (Width must be at most 10000)\n")
        self.assertEqual(editor.state.width, 0x10000)

    def test_unknown_command_and_quit(self):
        editor, output, code = run_session("5z\nq\n$\n", bytes(8))
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(output, "? (Don't understand command 'z')\n")
        self.assertEqual(editor.state.cursor_index, 0)

    def test_unparseable_line(self):
        _, output, _ = run_session("zzz\n", bytes(8))
        self.assertEqual(output, "? (Unable to parse 'zzz')\n")

    def test_help_and_state(self):
        _, output, _ = run_session("h\ns\n", b"\x00\x01", filename="x.bin")
        self.assertIn("(q)uit", output)
        self.assertIn("File: x.bin", output)
        self.assertIn("Index: 0 of 1", output)

    def test_banner(self):
        _, output, _ = run_session("", b"hi", quiet=False)
        self.assertTrue(output.startswith("h for help\n\nFile: (none)\n"))
        self.assertTrue(output.endswith("\n\n     0| 68 69\n"))


class TestInsertion(unittest.TestCase):

    def test_insert_at_index(self):
        editor, output, _ = run_session("2i\naa bb\n", b"\x01\x02\x03\x04")
        self.assertEqual(editor.state.buffer, bytearray(b"\x01\x02\xaa\xbb\x03\x04"))
        self.assertEqual(editor.state.cursor_index, 2)
        self.assertEqual(output, "     2| aa bb 03 04\n")

    def test_insert_into_empty_buffer(self):
        editor, output, _ = run_session("i\n4142\n")
        self.assertEqual(editor.state.buffer, bytearray(b"AB"))
        self.assertEqual(output, "     0| 41 42\n")

    def test_bad_hex_leaves_buffer(self):
        editor, output, _ = run_session("i\nzz\n", b"\x01")
        self.assertEqual(output, "? ('zz' isn't a hex string)\n")
        self.assertEqual(editor.state.buffer, bytearray(b"\x01"))
        self.assertFalse(editor.state.unsaved_changes)

    def test_end_of_input_inserts_nothing(self):
        editor, output, code = run_session("i\n", b"\x01")
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(editor.state.buffer, bytearray(b"\x01"))
        self.assertEqual(output, "")

    def test_read_error_abandons_only_the_insert(self):
        instream = mock.MagicMock()
        instream.readline.side_effect = ["i\n", OSError("boom"), ""]
        state = EditorState(buffer=bytearray(b"\x01"), prefs=Preferences(color=False, show_chars=False))
        state.show_prompt = False
        out = io.StringIO()
        self.assertEqual(HexEditor(state, instream, out, quiet=True).run(), EXIT_OK)
        self.assertEqual(out.getvalue(), "? (Couldn't read input from user)\n")

    def test_search_then_insert(self):
        editor, output, _ = run_session("/beef/i\n00\n", bytes.fromhex("deadbeef00dead"))
        self.assertEqual(bytes(editor.state.buffer), bytes.fromhex("dead00beef00dead"))
        self.assertEqual(output, "     2| 00 be ef 00 de ad\n")

    def test_search_then_kill(self):
        editor, output, _ = run_session("/dead/k\n", bytes.fromhex("deadbeef00dead"), cursor=1)
        self.assertEqual(bytes(editor.state.buffer), bytes.fromhex("deadbeef00"))
        self.assertEqual(editor.state.cursor_index, 4)
        self.assertEqual(output, "     4| 00\n")

    def test_kill_everything_prints_nothing(self):
        editor, output, _ = run_session("0,$k\n", b"\x01\x02")
        self.assertEqual(len(editor.state.buffer), 0)
        self.assertEqual(output, "")


class TestFiles(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.data_path = os.path.join(self.tmpdir.name, "data.bin")
        with open(self.data_path, "wb") as fh:
            fh.write(b"\x01\x02\x03\x04")

    def read_data(self):
        with open(self.data_path, "rb") as fh:
            return fh.read()

    def test_write(self):
        editor, output, _ = run_session("1,2k\nw\n", b"\x01\x02\x03\x04", filename=self.data_path)
        self.assertEqual(self.read_data(), b"\x01\x04")
        self.assertFalse(editor.state.unsaved_changes)

    def test_write_in_readonly_mode(self):
        editor, output, _ = run_session("R\nw\n", b"\xff", filename=self.data_path)
        self.assertEqual(output, "? (Read-only mode)\n")
        self.assertEqual(self.read_data(), b"\x01\x02\x03\x04")

    def test_write_without_filename_asks(self):
        path = os.path.join(self.tmpdir.name, "new.bin")
        editor, output, _ = run_session(f"w\n{path}\n", b"\xff")
        self.assertEqual(output, f"Write successful, changing filename to '{path}'\n")
        self.assertEqual(editor.state.filename, path)
        with open(path, "rb") as fh:
            self.assertEqual(fh.read(), b"\xff")

    def test_write_failure_keeps_unsaved_changes(self):
        editor, out = make_editor("w\n", b"\xff", filename=self.tmpdir.name)
        editor.state.unsaved_changes = True
        editor.run()
        self.assertEqual(out.getvalue(), f"? (Couldn't write to {self.tmpdir.name})\n")
        self.assertTrue(editor.state.unsaved_changes)

    def test_update_filename(self):
        editor, _, _ = run_session("u\nother.bin\n", b"\xff", filename=self.data_path)
        self.assertEqual(editor.state.filename, "other.bin")
        self.assertTrue(editor.state.unsaved_changes)

    def test_update_filename_needs_a_name(self):
        editor, output, _ = run_session("u\n\n", b"\xff", filename=self.data_path)
        self.assertEqual(output, "? (No filename given)\n")
        self.assertEqual(editor.state.filename, self.data_path)

    def test_load_file(self):
        editor, _, _ = run_session(f"l\n{self.data_path}\n", b"\xff")
        self.assertEqual(editor.state.buffer, bytearray(b"\x01\x02\x03\x04"))
        self.assertEqual(editor.state.filename, self.data_path)
        self.assertEqual(editor.state.cursor_index, 0)

    def test_load_file_asks_about_unsaved_changes(self):
        editor, out = make_editor(f"l\nmaybe\nn\nl\ny\n{self.data_path}\n", b"\xff", cursor=0)
        editor.state.unsaved_changes = True
        editor.run()
        self.assertEqual(out.getvalue().count("You have unsaved changes.  Carry on? (y/n): "), 3)
        self.assertEqual(editor.state.buffer, bytearray(b"\x01\x02\x03\x04"))
        self.assertFalse(editor.state.unsaved_changes)

    def test_load_missing_file(self):
        missing = os.path.join(self.tmpdir.name, "missing.bin")
        editor, output, _ = run_session(f"l\n{missing}\n", b"\xff")
        self.assertEqual(output, f"? ({missing} does not exist.  Use 'u' to just change filename)\n")
        self.assertEqual(editor.state.buffer, bytearray(b"\xff"))

    def test_save_and_load_state(self):
        state_path = os.path.join(self.tmpdir.name, "session.toml")
        script = f"/0304\nS\n{state_path}\n0\nW2\nx\nL\n{state_path}\n"
        editor, _, _ = run_session(script, b"\x01\x02\x03\x04", filename=self.data_path)
        self.assertEqual(editor.state.cursor_index, 2)
        self.assertEqual(editor.state.width, 16)
        self.assertEqual(editor.state.radix, 16)
        self.assertEqual(editor.state.last_search, b"\x03\x04")
        self.assertEqual(editor.state.filename, self.data_path)
        self.assertFalse(editor.state.show_prompt)

    def test_load_state_from_bad_file(self):
        state_path = os.path.join(self.tmpdir.name, "session.toml")
        with open(state_path, "w", encoding="utf-8") as fh:
            fh.write("[display]\nwidth = 4\n")
        editor, output, _ = run_session(f"L\n{state_path}\n", b"\xff")
        self.assertEqual(output, "? (Snapshot has no [session] table)\n")
        self.assertEqual(editor.state.width, 16)

    def test_load_state_with_session_that_is_not_a_table(self):
        state_path = os.path.join(self.tmpdir.name, "session.toml")
        with open(state_path, "w", encoding="utf-8") as fh:
            fh.write("session = 3\n")
        editor, output, code = run_session(f"L\n{state_path}\np\n", b"\xff")
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(output, "? (Snapshot has no [session] table)\n     0| ff\n")

    def test_load_state_with_filename_that_is_not_a_string(self):
        state_path = os.path.join(self.tmpdir.name, "session.toml")
        with open(state_path, "w", encoding="utf-8") as fh:
            fh.write("[session]\nfilename = 5\n")
        editor, output, _ = run_session(f"L\n{state_path}\n", b"\xff")
        self.assertEqual(output, "? (Snapshot does not name a file)\n")
        self.assertEqual(editor.state.buffer, bytearray(b"\xff"))

    def test_load_state_with_display_that_is_not_a_table(self):
        state_path = os.path.join(self.tmpdir.name, "session.toml")
        with open(state_path, "w", encoding="utf-8") as fh:
            fh.write(f'display = "width"\n[session]\nfilename = "{self.data_path}"\n')
        editor, output, _ = run_session(f"L\n{state_path}\n", b"\xff")
        self.assertEqual(output, "? (Preferences must be a table, got 'width')\n")
        self.assertEqual(editor.state.buffer, bytearray(b"\xff"))

    def test_read_preferences_with_display_that_is_not_a_table(self):
        prefs_path = os.path.join(self.tmpdir.name, "preferences.toml")
        with open(prefs_path, "w", encoding="utf-8") as fh:
            fh.write('display = "width"\n')
        editor, output, code = run_session(f"r\n{prefs_path}\np\n", b"\xff")
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(output.splitlines(), [
            f"? (Couldn't read preferences from {prefs_path}: Preferences must be a table, got 'width')",
            "     0| ff",
        ])

    def test_save_and_read_preferences(self):
        prefs_path = os.path.join(self.tmpdir.name, "preferences.toml")
        with open(prefs_path, "w", encoding="utf-8") as fh:
            fh.write('[logging]\nfile_level = "DEBUG"\n')
        editor, _, _ = run_session(f"W8\nP\n{prefs_path}\nW4\nr\n{prefs_path}\n", b"\xff")
        self.assertEqual(editor.state.width, 8)
        with open(prefs_path, "r", encoding="utf-8") as fh:
            saved = fh.read()
        self.assertIn("file_level", saved)
        self.assertIn("width = 8", saved)

    def test_save_preferences_to_default_location(self):
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": self.tmpdir.name}):
            run_session("P\n\n", b"\xff")
        self.assertTrue(os.path.isfile(os.path.join(self.tmpdir.name, "edhex", "preferences.toml")))

    def test_read_bad_preferences(self):
        prefs_path = os.path.join(self.tmpdir.name, "preferences.toml")
        with open(prefs_path, "w", encoding="utf-8") as fh:
            fh.write("[display]\nwidth = 0\n")
        editor, output, _ = run_session(f"r\n{prefs_path}\n", b"\xff")
        self.assertEqual(output, f"? (Couldn't read preferences from {prefs_path}: Width must be positive)\n")
        self.assertEqual(editor.state.width, 16)


class TestFatalErrors(unittest.TestCase):

    def test_command_read_failure(self):
        instream = mock.MagicMock()
        instream.readline.side_effect = OSError("boom")
        state = EditorState()
        state.show_prompt = False
        editor = HexEditor(state, instream, io.StringIO(), quiet=True)
        with self.assertRaises(FatalError) as ctx:
            editor.run()
        self.assertEqual(ctx.exception.exit_code, EXIT_INPUT_ERROR)


class TestInitialState(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def test_no_filename(self):
        state = initial_state("", Preferences())
        self.assertTrue(state.empty())
        self.assertTrue(state.unsaved_changes)

    def test_missing_file_is_empty_buffer(self):
        path = os.path.join(self.tmpdir.name, "new.bin")
        state = initial_state(path, Preferences(), readonly=True)
        self.assertTrue(state.empty())
        self.assertEqual(state.filename, path)
        self.assertTrue(state.readonly)

    def test_existing_file(self):
        path = os.path.join(self.tmpdir.name, "data.bin")
        with open(path, "wb") as fh:
            fh.write(b"abc")
        state = initial_state(path, Preferences())
        self.assertEqual(state.buffer, bytearray(b"abc"))
        self.assertFalse(state.unsaved_changes)

    def test_directory(self):
        with self.assertRaises(FatalError) as ctx:
            initial_state(self.tmpdir.name, Preferences())
        self.assertEqual(ctx.exception.exit_code, EXIT_NOT_REGULAR_FILE)

    def test_size_mismatch(self):
        path = os.path.join(self.tmpdir.name, "data.bin")
        with open(path, "wb") as fh:
            fh.write(b"abc")
        fake_stat = mock.MagicMock(st_mode=stat.S_IFREG | 0o644, st_size=10)
        with mock.patch("edhex.storage.os.stat", return_value=fake_stat):
            with self.assertRaises(FatalError) as ctx:
                initial_state(path, Preferences())
        self.assertEqual(ctx.exception.exit_code, EXIT_SIZE_MISMATCH)

    def test_unreadable(self):
        with mock.patch("edhex.editor.read_all_bytes", side_effect=ReadFailed("Cannot read x")):
            with self.assertRaises(FatalError) as ctx:
                initial_state("x", Preferences())
        self.assertEqual(ctx.exception.exit_code, EXIT_UNREADABLE)
        self.assertEqual(str(ctx.exception), "Cannot read x")


if __name__ == '__main__':
    unittest.main()
