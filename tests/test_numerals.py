import unittest

from edhex.errors import ParseError
from edhex.numerals import format_index, parse_number, resolve


class TestResolve(unittest.TestCase):

    def test_dot_is_cursor(self):
        self.assertEqual(resolve(".", 7, 100, 16), 7)

    def test_dollar_is_max_index(self):
        self.assertEqual(resolve("$", 7, 100, 16), 100)

    def test_dollar_without_bytes_fails(self):
        with self.assertRaises(ParseError) as ctx:
            resolve("$", 0, None, 16)
        self.assertEqual(str(ctx.exception), "No max index")

    def test_digits_follow_radix(self):
        self.assertEqual(resolve("3d", 0, 100, 16), 0x3d)
        self.assertEqual(resolve("3D", 0, 100, 16), 0x3d)
        self.assertEqual(resolve("61", 0, 100, 10), 61)

    def test_no_clamping(self):
        self.assertEqual(resolve("ffff", 0, 10, 16), 0xffff)

    def test_bad_digit_for_radix(self):
        with self.assertRaises(ParseError) as ctx:
            resolve("3d", 0, 100, 10)
        self.assertEqual(str(ctx.exception), "3d isn't a number in base 10")

    def test_int_extras_are_not_digits(self):
        for token in ("+5", "-5", "1_0", " 5", "0x10", ""):
            with self.subTest(token=token):
                with self.assertRaises(ParseError):
                    parse_number(token, 16)


class TestFormatIndex(unittest.TestCase):

    def test_hex_and_decimal(self):
        self.assertEqual(format_index(255, 16), "ff")
        self.assertEqual(format_index(255, 10), "255")


if __name__ == '__main__':
    unittest.main()
