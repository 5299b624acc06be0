# -*- coding: utf-8 -*-

"""Exceptions raised while serving a connection. Every one of them is terminal
for the session. `reply` is the diagnostic line for the peer, or `None` when
the peer must not be answered."""


class LpdError(Exception):
    """Base class for all session failures."""
    reply = None

    def __init__(self, message, reply=None):
        super().__init__(message)
        if reply is not None:
            self.reply = reply


class ProtocolError(LpdError):
    """The peer sent a malformed or unsupported command."""

    def __init__(self, message, reply=None):
        super().__init__(message, message if reply is None else reply)


class TransferError(LpdError):
    """Byte count mismatch or bad end-of-file marker. Never reported to the
    peer, which has already shown it does not follow the protocol."""
    pass


class SpoolError(LpdError):
    """A spool file or the queue target could not be created or opened."""

    def __init__(self, message, reply=None):
        super().__init__(message, message if reply is None else reply)


class RejectedInputError(LpdError):
    """Input refused for safety: oversized control file or a name that is
    empty once sanitized."""
    pass


class IncompleteJobError(LpdError):
    """The peer went away before sending both files of a job."""
    pass
