import io
import os

from microlpd.transfer import DISCARD, copy_exactly


PAYLOAD = bytes(range(256)) * 40


def open_output(tmp_path):
    return os.open(tmp_path / 'out', os.O_CREAT | os.O_WRONLY, 0o600)


def test_copies_exactly_the_declared_length(tmp_path):
    source = io.BytesIO(PAYLOAD + b'\x00rest')
    fd = open_output(tmp_path)
    try:
        copied = copy_exactly(source, fd, len(PAYLOAD), chunk_size=1000)
    finally:
        os.close(fd)
    assert copied == len(PAYLOAD)
    assert (tmp_path / 'out').read_bytes() == PAYLOAD
    assert source.read() == b'\x00rest'


def test_short_source_is_reported(tmp_path):
    fd = open_output(tmp_path)
    try:
        copied = copy_exactly(io.BytesIO(b'abc'), fd, 10)
    finally:
        os.close(fd)
    assert copied == 3
    assert (tmp_path / 'out').read_bytes() == b'abc'


def test_discard_still_consumes():
    source = io.BytesIO(PAYLOAD)
    copied = copy_exactly(source, DISCARD, 5000, chunk_size=64)
    assert copied == 5000
    assert source.read() == PAYLOAD[5000:]


def test_zero_length():
    source = io.BytesIO(b'\x00')
    assert copy_exactly(source, DISCARD, 0) == 0
    assert source.read() == b'\x00'
