# -*- coding: utf-8 -*-

"""Client side of the same protocol subset, for `microlpr.py` and for
exercising a server end to end. Unlike RFC 1179 servers in general, this
server acknowledges a subfile only after its contents and end marker, so the
client sends command, contents and marker in one go."""


import logging

from .exceptions import ProtocolError
from .names import sane
from .session import ACK, CONTROL_FILE, DATA_FILE, RECEIVE_JOB


logger = logging.getLogger(__name__)


def job_file_names(number, host):
    """Returns the conventional (control, data) names `cfA###host` and
    `dfA###host`."""
    host = sane(host)
    return f'cfA{number % 1000:03d}{host}', f'dfA{number % 1000:03d}{host}'


def build_control_file(host, user, data_name, job_name=None):
    """Control file with the host, user, job name and data file records."""
    lines = ['H' + host, 'P' + user]
    if job_name:
        lines.append('J' + job_name)
    lines.append('l' + data_name)
    return ''.join(line + '\n' for line in lines).encode('utf-8')


def submit_job(rfile, wfile, queue, data, *, control, control_name,
               data_name):
    """Send one job over the binary streams `rfile` and `wfile`. Raises
    `ProtocolError` when the server answers anything but an acknowledgment.
    The caller closes the connection."""
    send(wfile, RECEIVE_JOB + queue.encode('utf-8') + b'\n')
    expect_ack(rfile, 'queue selection')
    send_subfile(rfile, wfile, CONTROL_FILE, control_name, control)
    send_subfile(rfile, wfile, DATA_FILE, data_name, data)
    logger.info('submitted %s (%d bytes) to queue %s',
                data_name, len(data), queue)


def send_subfile(rfile, wfile, tag, name, content):
    header = tag + b'%d %s\n' % (len(content), name.encode('utf-8'))
    send(wfile, header + content + ACK)
    expect_ack(rfile, name)


def send(wfile, data):
    wfile.write(data)
    wfile.flush()


def expect_ack(rfile, what):
    """Read one acknowledgment byte. Anything else is the start of a
    diagnostic line, which becomes the error message."""
    answer = rfile.read(1)
    if answer == ACK:
        return
    if not answer:
        raise ProtocolError(f'connection closed by server after {what}')
    message = (answer + rfile.readline()).decode('utf-8', 'replace').strip()
    raise ProtocolError(f'{what} refused: {message}')
