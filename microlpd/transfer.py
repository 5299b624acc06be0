# -*- coding: utf-8 -*-

"""Length-prefixed copying from the peer. The caller declares how many bytes
to expect; `copy_exactly` reports how many actually arrived so that a short
transfer can never pass for a complete one."""


import logging
import os

from .exceptions import SpoolError


logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Destination that consumes the bytes without storing them.
DISCARD = None


def copy_exactly(source, destination, expected_len, chunk_size=CHUNK_SIZE):
    """Read `expected_len` bytes from the binary stream `source` and write them
    to the file descriptor `destination`, or throw them away when it is
    `DISCARD`. Stops early at end of stream. Returns the number of bytes
    copied. A failed write raises `SpoolError`; read errors propagate as
    `OSError`."""
    copied = 0
    while copied < expected_len:
        chunk = source.read(min(chunk_size, expected_len - copied))
        if not chunk:
            logger.debug('end of stream after %d of %d bytes',
                         copied, expected_len)
            break
        if destination is not DISCARD:
            try:
                write_all(destination, chunk)
            except OSError as e:
                raise SpoolError(f'write failed: {e.strerror}') from e
        copied += len(chunk)
    return copied


def write_all(fd, data):
    """`os.write` until all of `data` is written."""
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]
