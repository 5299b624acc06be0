# -*- coding: utf-8 -*-

"""Control file parsing. A control file is a list of records, one per line,
each a single alphabetic key followed by its value:

    Hhost.example.com
    Palice
    Jreport.txt
    ldfA001host

Each record becomes an environment variable for the helper, named by its key.
The names therefore come from the peer; `protected` lets the configuration
keep some of them out of reach. `DATAFILE` is added with the name under which
the data file was actually stored, since the `l` record is only the peer's
claim."""


import logging
import os

from .spool import CONTROL


logger = logging.getLogger(__name__)

DATAFILE = 'DATAFILE'


def parse_records(content):
    """Yield (key, value) pairs of `bytes` from the control file `content`,
    in file order. Parsing stops without error at the first line that does
    not start with an ASCII letter, or at a last line with no newline."""
    position = 0
    while True:
        end = content.find(b'\n', position)
        if end < 0:
            return
        line = content[position:end]
        if not line[:1].isalpha():
            return
        yield line[:1], line[1:]
        position = end + 1


def read_control_file(path):
    """Return the contents of the control file at `path` and delete it. The
    file is gone even when reading fails."""
    try:
        with open(path, 'rb') as fin:
            return fin.read()
    finally:
        os.unlink(path)


def helper_environment(job, base=None, protected=()):
    """Consume the control file of the completed `job` and return the
    environment mapping for the helper: `base` (default `os.environ`) plus
    one variable per record plus `DATAFILE`."""
    environment = dict(os.environ if base is None else base)
    content = read_control_file(job.path(CONTROL))
    environment[DATAFILE] = job.data_name
    for key, value in parse_records(content):
        name = os.fsdecode(key)
        if name in protected:
            logger.warning('ignoring control record for protected %s', name)
            continue
        # Values end at a NUL, which the environment cannot hold.
        environment[name] = os.fsdecode(value.split(b'\x00', 1)[0])
    return environment
