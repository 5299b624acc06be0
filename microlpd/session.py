# -*- coding: utf-8 -*-

"""The protocol state machine run once per connection.

Conversation, peer to server unless noted:

    \\x02QUEUE\\n                         start a job for QUEUE
                        server: \\x00
    \\x02LEN NAME\\n <LEN bytes> \\x00     control file
                        server: \\x00
    \\x03LEN NAME\\n <LEN bytes> \\x00     data file
                        server: \\x00   (and one more \\x00 before hand-off)

The subfiles may come in either order, each at most once. A queue that is a
directory is spooled: both files are stored there and, once complete, handed
to the helper. Any other queue is a device or file the data is appended to.
"""


import enum
import logging
import os
import re
from pathlib import Path

from .exceptions import (IncompleteJobError, LpdError, ProtocolError,
                         RejectedInputError, SpoolError, TransferError)
from .names import sane
from .spool import CONTROL, DATA, SpoolJob, open_target
from .transfer import DISCARD, copy_exactly


logger = logging.getLogger(__name__)

# Command tags
RECEIVE_JOB = b'\x02'
CONTROL_FILE = b'\x02'
DATA_FILE = b'\x03'

ACK = b'\x00'

MAX_COMMAND_SIZE = 4 * 1024
MAX_CONTROL_SIZE = 16 * 1024
MAX_LENGTH = 2 ** 31 - 1

LENGTH_PATTERN = re.compile(rb'[0-9]+')

# Outcome statuses
FINISHED = 'FINISHED'
FAILED = 'FAILED'
HANDOFF = 'HANDOFF'


class Subfiles(enum.Flag):
    """Set of subfiles of the job, used both for the subcommands seen so far
    and for the subfiles completely received."""
    NONE = 0
    CONTROL = 1
    DATA = 2
    BOTH = CONTROL | DATA


# tag -> (kind, flag)
SUBCOMMANDS = {
    CONTROL_FILE: (CONTROL, Subfiles.CONTROL),
    DATA_FILE: (DATA, Subfiles.DATA),
}


class Outcome:
    """How a session ended. `HANDOFF` means the job in `job` is complete and
    the caller must now run `helper` on it; the session itself never starts
    a process."""

    def __init__(self, status, job=None, helper=None):
        self.status = status
        self.job = job
        self.helper = helper

    def __repr__(self):
        return '%s(%r, %r)' % (self.__class__.__name__, self.status, self.job)

    @property
    def succeeded(self):
        return self.status != FAILED

    @property
    def exit_status(self):
        return 0 if self.succeeded else 1


class Session:
    """One LPD connection. `rfile` and `wfile` are the binary streams from and
    to the peer. Queues are looked up in `spool_dir`. `helper` is the argument
    list of the program to hand complete jobs to, or `None`."""

    def __init__(self, rfile, wfile, *, spool_dir='.', helper=None,
                 max_command_size=MAX_COMMAND_SIZE,
                 max_control_size=MAX_CONTROL_SIZE):
        self.rfile = rfile
        self.wfile = wfile
        self.spool_dir = Path(spool_dir)
        self.helper = list(helper) if helper else None
        self.max_command_size = max_command_size
        self.max_control_size = max_control_size
        self.queue = None
        self.queue_path = None
        self.spooling = False
        self.job = None
        self.seen = Subfiles.NONE
        self.received = Subfiles.NONE

    def run(self):
        """Serve the connection to its end and return an `Outcome`. On failure
        the peer gets a diagnostic line when it can be trusted to read one,
        and every spool file of the job is removed."""
        outcome = Outcome(FAILED)
        try:
            outcome = self.serve()
        except LpdError as e:
            if isinstance(e, SpoolError):
                level = logging.ERROR
            else:
                level = logging.WARNING
            logger.log(level, 'session failed: %s', e)
            if e.reply is not None:
                self.send_reply(e.reply)
        except OSError as e:
            logger.warning('connection failed: %s', e)
        finally:
            if outcome.status == FAILED and self.job is not None:
                self.job.discard()
        return outcome

    def serve(self):
        line = self.read_command()
        if line is None:
            raise LpdError('connection closed before any command')
        if line[:1] != RECEIVE_JOB:
            raise unsupported(line)
        self.open_queue(line[1:])
        self.acknowledge()
        while True:
            line = self.read_command()
            if line is None:
                return self.end_of_stream()
            kind, flag, expected_len, name = self.parse_subcommand(line)
            self.receive_file(kind, flag, expected_len, name)
            self.acknowledge()
            if (self.spooling and self.helper
                    and self.received == Subfiles.BOTH):
                # Tells the peer the job is being handed off.
                self.acknowledge()
                logger.info('job complete, handing off %s to %s',
                            self.job.data_name, self.helper[0])
                return Outcome(HANDOFF, self.job, self.helper)

    def open_queue(self, raw_name):
        """Resolve the queue: a directory we can enter means spooling."""
        self.queue = sane(raw_name.decode('latin-1'))
        if not self.queue:
            raise RejectedInputError('empty queue name')
        self.queue_path = self.spool_dir / self.queue
        self.spooling = (self.queue_path.is_dir()
                         and os.access(self.queue_path, os.X_OK))
        if self.spooling:
            self.job = SpoolJob(self.queue_path)
        logger.info('receiving job for queue %s (%s)', self.queue,
                    'spooling' if self.spooling else 'non-spooling')

    def parse_subcommand(self, line):
        """Validate a subcommand line. Returns (kind, flag, length, name),
        where `name` is still the raw bytes sent by the peer."""
        try:
            kind, flag = SUBCOMMANDS[line[:1]]
        except KeyError:
            raise unsupported(line) from None
        if flag in self.seen:
            raise ProtocolError('Duplicated subcommand')
        self.seen |= flag
        length, separator, name = line[1:].split(b'\n', 1)[0].partition(b' ')
        if not separator:
            raise ProtocolError('No or bad filename')
        if not LENGTH_PATTERN.fullmatch(length) or int(length) > MAX_LENGTH:
            raise ProtocolError('Bad length')
        expected_len = int(length)
        if kind == CONTROL and expected_len > self.max_control_size:
            raise RejectedInputError(
                f'control file of {expected_len} bytes', 'File is too big')
        logger.debug('%s file %r, %d bytes', kind, name, expected_len)
        return kind, flag, expected_len, name

    def receive_file(self, kind, flag, expected_len, raw_name):
        """Copy one subfile from the peer to its destination and check the
        end-of-file marker that follows it."""
        if self.spooling:
            name = sane(raw_name.decode('latin-1'))
            if not name:
                raise RejectedInputError(f'bad {kind} file name {raw_name!r}',
                                         'No or bad filename')
            fd = self.job.create(kind, name)
        elif kind == DATA:
            fd = open_target(self.queue_path)
        else:
            fd = DISCARD
        try:
            try:
                copied = copy_exactly(self.rfile, fd, expected_len)
            except OSError as e:
                raise TransferError(f'reading {kind} file: {e}') from e
            if copied != expected_len:
                raise TransferError(
                    f'expected {expected_len} but got {copied} bytes')
            if self.rfile.read(1) != ACK:
                raise TransferError(f'no end-of-file marker after {kind} file')
            if self.spooling:
                self.job.finish(kind, fd)
        finally:
            if fd is not DISCARD:
                os.close(fd)
        self.received |= flag

    def end_of_stream(self):
        if self.spooling and self.received != Subfiles.BOTH:
            raise IncompleteJobError(
                f'connection closed with incomplete job {self.job!r}')
        logger.info('connection closed by peer')
        return Outcome(FINISHED, self.job)

    def read_command(self):
        """Return the next command line including its newline, or `None` at
        end of stream."""
        line = self.rfile.readline(self.max_command_size)
        if not line:
            return None
        if len(line) >= self.max_command_size and not line.endswith(b'\n'):
            raise ProtocolError('Command is too long')
        return line

    def acknowledge(self):
        self.wfile.write(ACK)
        self.wfile.flush()

    def send_reply(self, text):
        """Best effort: the peer may already be gone."""
        try:
            self.wfile.write(text.encode('utf-8', 'replace') + b'\n')
            self.wfile.flush()
        except OSError as e:
            logger.debug('could not reply to peer: %s', e)


def unsupported(line):
    return ProtocolError(f'Command {line[0]:02x} is not supported')
