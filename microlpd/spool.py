# -*- coding: utf-8 -*-

"""Spool files of a job. A queue directory holds one control file and one data
file per job, named by the peer. Files are created exclusively, so a name
already present in the queue belongs to another connection and the job is
refused; this is the only coordination between concurrent sessions.

A file in flight has mode 0200. It becomes 0600 once its transfer has been
verified; the helper normally runs as the same user, so the files are
not made world-readable. `SpoolJob.discard` removes everything created so
far, so a failed session never leaves a half-written job behind."""


import logging
import os
from pathlib import Path

from .exceptions import SpoolError


logger = logging.getLogger(__name__)

# Subfile kinds, also the order of `SpoolJob.names`.
CONTROL = 'control'
DATA = 'data'

PENDING_MODE = 0o200
COMPLETE_MODE = 0o600


class SpoolJob:
    """The files of one job inside `directory`, keyed by kind."""

    def __init__(self, directory):
        self.directory = Path(directory)
        self.names = {}  # kind -> sanitized file name

    def __repr__(self):
        return '%s(%r, %r)' % (self.__class__.__name__,
                               str(self.directory), self.names)

    @property
    def control_name(self):
        return self.names.get(CONTROL)

    @property
    def data_name(self):
        return self.names.get(DATA)

    def path(self, kind):
        """Returns the full path of the file recorded for `kind`."""
        return self.directory / self.names[kind]

    def create(self, kind, name):
        """Create `name` fresh in the queue directory, write-only, and
        remember it as the `kind` file. Returns the open file descriptor."""
        path = self.directory / name
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY
                         | os.O_TRUNC, PENDING_MODE)
        except OSError as e:
            raise SpoolError(f"can't create '{name}': {e.strerror}") from e
        self.names[kind] = name
        logger.debug('created %s file %s', kind, path)
        return fd

    def finish(self, kind, fd):
        """Mark the `kind` file, open as `fd`, as completely received."""
        os.fchmod(fd, COMPLETE_MODE)
        logger.info('received %s file %s', kind, self.names[kind])

    def discard(self):
        """Remove every file created for this job."""
        for kind, name in list(self.names.items()):
            path = self.directory / name
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            else:
                logger.info('removed incomplete %s file %s', kind, path)
            del self.names[kind]


def open_target(path):
    """Open the non-spooling queue target (a device or ordinary file) for
    appending. The target must already exist."""
    try:
        return os.open(path, os.O_RDWR | os.O_APPEND)
    except OSError as e:
        raise SpoolError(f"can't open '{Path(path).name}': {e.strerror}") from e
