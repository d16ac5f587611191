# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Numeral resolution: turning ``.``, ``$`` and digit strings into byte indices."""

import string
from typing import Optional

from edhex.errors import ParseError

SUPPORTED_RADIXES = (10, 16)

# Characters that may appear in an index token before radix validation.
TOKEN_CHARS = frozenset(string.hexdigits + ".$")

_DIGITS = {
    10: frozenset(string.digits),
    16: frozenset(string.hexdigits),
}


def parse_number(token: str, radix: int) -> int:
    """
    Parses ``token`` as an unsigned integer in ``radix``.

    Only the plain digits of the radix are accepted; signs, underscores,
    prefixes such as ``0x`` and whitespace are rejected, unlike ``int()``.

    Raises:
        ParseError: If ``token`` is empty or contains a non-digit for ``radix``.
    """
    digits = _DIGITS.get(radix)
    if digits is None:
        raise ParseError(f"Unsupported radix {radix}")
    if not token or any(ch not in digits for ch in token):
        raise ParseError(f"{token} isn't a number in base {radix}")
    return int(token, radix)


def resolve(token: str, cursor: int, max_index: Optional[int], radix: int) -> int:
    """
    Resolves a numeral token to an absolute byte index.

    Args:
        token (str): ``"."`` for the cursor, ``"$"`` for the last byte, or a
            digit string in ``radix``.
        cursor (int): The current cursor index.
        max_index (Optional[int]): Index of the last byte, or None when the
            buffer is empty.
        radix (int): 10 or 16.

    Returns:
        int: The resolved index. No clamping is done here; callers check the
        result against the buffer when they apply the command.

    Raises:
        ParseError: ``"No max index"`` for ``$`` on an empty buffer, or the
            bad-numeral message from :func:`parse_number`.

    Example:
        >>> resolve("3d", 0, 100, 16)
        61
        >>> resolve("$", 4, 99, 10)
        99
    """
    if token == ".":
        return cursor
    if token == "$":
        if max_index is None:
            raise ParseError("No max index")
        return max_index
    return parse_number(token, radix)


def format_index(index: int, radix: int) -> str:
    """Formats ``index`` the way users type it: bare lowercase hex, or decimal."""
    if radix == 16:
        return f"{index:x}"
    return str(index)
