# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Reading the bytes to edit from disk and writing them back."""

import logging
import os
import stat


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for failures talking to the filesystem."""


class FileDoesNotExist(StorageError):
    pass


class NotARegularFile(StorageError):
    pass


class SizeMismatch(StorageError):
    """The file yielded a different number of bytes than its size on disk."""


class ReadFailed(StorageError):
    pass


class WriteFailed(StorageError):
    pass


def read_all_bytes(filename: str) -> bytearray:
    """
    Reads an entire regular file into memory.

    Args:
        filename (str): Path of the file to load.

    Returns:
        bytearray: The file's contents, ready to be edited in place.

    Raises:
        FileDoesNotExist: Nothing exists at ``filename``.
        NotARegularFile: ``filename`` is a directory, device, FIFO, etc.
        SizeMismatch: The bytes read differ in count from the size ``stat`` reported.
        ReadFailed: Any other OS error while opening or reading.
    """
    try:
        st = os.stat(filename)
    except FileNotFoundError as exc:
        raise FileDoesNotExist(f"{filename} does not exist") from exc
    except OSError as exc:
        raise ReadFailed(f"Cannot read {filename}: {exc.strerror or exc}") from exc

    if not stat.S_ISREG(st.st_mode):
        raise NotARegularFile(f"{filename} is not a regular file")

    try:
        with open(filename, "rb") as fh:
            data = bytearray(fh.read())
    except OSError as exc:
        raise ReadFailed(f"Cannot read {filename}: {exc.strerror or exc}") from exc

    if len(data) != st.st_size:
        raise SizeMismatch(f"Expected {st.st_size} bytes from {filename} but read {len(data)}")

    logger.debug("Read %d bytes from '%s'", len(data), filename)
    return data


def write_all_bytes(filename: str, data: bytes) -> None:
    """
    Replaces the contents of ``filename`` with ``data``.

    Raises:
        WriteFailed: The file could not be opened or written.
    """
    try:
        with open(filename, "wb") as fh:
            fh.write(data)
    except OSError as exc:
        logger.error("Failed to write %d bytes to '%s': %s", len(data), filename, exc)
        raise WriteFailed(f"Couldn't write to {filename}") from exc
    logger.info("Wrote %d bytes to '%s'", len(data), filename)
