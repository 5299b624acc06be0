# -*- coding: utf-8 -*-

"""Submit a file to a print queue of a remote LPD server."""


import argparse
import getpass
import os
import socket
import sys

from microlpd.client import build_control_file, job_file_names, submit_job
from microlpd.exceptions import ProtocolError


LPD_PORT = 515

emit = lambda *args: None  # Do nothing


def main(argv=None):
    global emit
    args = parse_args(argv)
    if args.verbose:
        emit = err_output
    try:
        return submit(args)
    except (OSError, ProtocolError) as e:
        err_output(f'{os.path.basename(sys.argv[0])}: {e}')
        return 1


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument('-P', '--queue', default='lp', help='queue name')
    parser.add_argument('-p', '--port', type=int, default=LPD_PORT)
    parser.add_argument('-U', '--user', default=None,
                        help='user name (default: current user)')
    parser.add_argument('-J', '--job-name', default=None,
                        help='job name (default: file name)')
    parser.add_argument('-n', '--job-number', type=int, default=None,
                        help='job number, 0-999 (default: from PID)')
    parser.add_argument('host', help='LPD server')
    parser.add_argument('file', help='file to print')
    args = parser.parse_args(argv)
    return args


def submit(args):
    """Submit `args.file` to `args.queue` on `args.host`."""
    with open(args.file, 'rb') as fin:
        data = fin.read()
    host = socket.gethostname()
    user = args.user or getpass.getuser()
    number = os.getpid() if args.job_number is None else args.job_number
    control_name, data_name = job_file_names(number, host)
    control = build_control_file(host, user, data_name,
                                 args.job_name or os.path.basename(args.file))
    emit('control file', control_name, control)
    with socket.create_connection((args.host, args.port)) as sock:
        with sock.makefile('rb') as rfile, sock.makefile('wb') as wfile:
            submit_job(rfile, wfile, args.queue, data, control=control,
                       control_name=control_name, data_name=data_name)
            sock.shutdown(socket.SHUT_WR)
            # Drain the hand-off acknowledgment, if any.
            rfile.read()
    emit('submitted', data_name, len(data), 'bytes to', args.queue)
    return 0


def err_output(*args):
    """Send args to sys.stderr."""
    print(*args, file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
