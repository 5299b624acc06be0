# -*- coding: utf-8 -*-

"""A minimal Line Printer Daemon (RFC 1179 subset) for one connection at a
time. An external listener (tcpsvd, inetd, a systemd socket unit) accepts
the connection and runs `microlpdd.py` with the peer on stdin and stdout.

The spool directory holds one entry per queue:

    SPOOL_DIR/
        lp0 -> /dev/usb/lp0     non-spooling: data is appended to it
        office/                 spooling: jobs are stored here

The lifecycle of a spooled job:

1. The peer names the queue, then sends the control file and the data file
   in either order. Each is created fresh under its sanitized name, mode
   0200, and becomes 0600 once its length and end marker are verified.
2. Any failure removes every file of the job.
3. With a helper configured, a complete job is handed off:
    a. the control file is read, deleted, and turned into environment
       variables, one per record, plus `DATAFILE`;
    b. the helper replaces the daemon process in the queue directory;
    c. the helper prints and deletes the data file.

Without a helper, complete jobs simply stay in the queue directory.
"""

from .launcher import launch_helper
from .session import Outcome, Session


__version__ = '0.1.0'

__all__ = ['__version__', 'Outcome', 'Session', 'launch_helper']
