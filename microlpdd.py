# -*- coding: utf-8 -*-

"""Per-connection LPD server. Run it from a TCP super-server, which accepts
the connection and hands the peer over on stdin and stdout:

    tcpsvd -E 0 515 microlpdd.py -c /etc/microlpd.yaml SPOOLDIR [HELPER [ARGS...]]

stdout belongs to the peer, so logging must never be configured to it."""


import argparse
import logging
import logging.config
import sys
import syslog

import yaml

from microlpd import launch_helper, Session
from microlpd.session import HANDOFF, MAX_COMMAND_SIZE, MAX_CONTROL_SIZE


logger = logging.getLogger('microlpdd')

LOG_FORMAT = '%(asctime)s %(name)s[%(process)d] %(levelname)s %(message)s'

DEFAULT_LPD_CONFIG = {
    'spool_dir': '.',
    'helper': None,
    'max_command_size': MAX_COMMAND_SIZE,
    'max_control_size': MAX_CONTROL_SIZE,
    'protected_variables': [],
}


def main(argv=None):
    args = parse_args(argv)
    config = load_config_file(args.config_file) if args.config_file else {}
    logging_config = config.pop('logging', None)
    daemon_config = config.pop('daemon', None) or {}
    lpd_config = make_lpd_config(config.pop('lpd', None), args)
    syslog.openlog('microlpd', syslog.LOG_PID, syslog.LOG_LPR)
    syslog.syslog(syslog.LOG_NOTICE,
                  'serving connection, spool %s' % lpd_config['spool_dir'])
    try:
        config_logging(logging_config)
        daemon_kwds = check_daemon_options(daemon_config)
        logger.debug('args: %r', sys.argv)
        logger.debug('lpd_config: %r', lpd_config)
        return serve(lpd_config, daemon_kwds,
                     sys.stdin.buffer, sys.stdout.buffer)
    except Exception as e:
        syslog.syslog(syslog.LOG_ERR, str(e))
        logger.exception(repr(e))
        raise
    finally:
        syslog.syslog(syslog.LOG_NOTICE, 'exiting')
        logging.shutdown()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.split('\n\n')[0])
    parser.add_argument('-c', '--config', dest='config_file',
                        help='path to YAML file')
    parser.add_argument('spool_dir', nargs='?',
                        help='directory containing the queues')
    parser.add_argument('helper', nargs=argparse.REMAINDER,
                        help='program (and arguments) run on complete jobs')
    args = parser.parse_args(argv)
    return args


def load_config_file(config_file):
    with open(config_file) as fin:
        config = yaml.safe_load(fin)
    return config or {}


def make_lpd_config(lpd_config, args):
    """Defaults, overridden by the YAML `lpd` section, overridden by the
    command line."""
    result = dict(DEFAULT_LPD_CONFIG)
    result.update(lpd_config or {})
    if args.spool_dir:
        result['spool_dir'] = args.spool_dir
    if args.helper:
        result['helper'] = args.helper
    if isinstance(result['helper'], str):
        result['helper'] = [result['helper']]
    return result


def serve(lpd_config, daemon_kwds, rfile, wfile):
    """Run one session on the peer streams. Returns the exit status, unless
    the job is handed to the helper, in which case it does not return."""
    session = Session(rfile, wfile,
                      spool_dir=lpd_config['spool_dir'],
                      helper=lpd_config['helper'],
                      max_command_size=lpd_config['max_command_size'],
                      max_control_size=lpd_config['max_control_size'])
    outcome = session.run()
    logger.info('session ended: %s', outcome.status)
    if outcome.status == HANDOFF:
        launch_helper(outcome.job, outcome.helper, daemon_kwds,
                      protected=frozenset(lpd_config['protected_variables']))
    return outcome.exit_status


def check_daemon_options(daemon_config):
    """Returns the non-default settings for the `DaemonContext` the helper is
    started in; dies if there are any illegal settings."""
    check_for_illegal_daemon_options(daemon_config)
    daemon_kwds = {k: v for k, v in daemon_config.items() if v is not None}
    return daemon_kwds


def check_for_illegal_daemon_options(daemon_config):
    """Error out and die if any illegal options."""
    LEGAL_DAEMON_OPTIONS = set('''
        working_directory
        chroot_directory
        umask
        detach_process
        uid
        gid
        prevent_core
    '''.split())
    illegal_options = set(daemon_config) - LEGAL_DAEMON_OPTIONS
    if illegal_options:
        logger.critical('illegal daemon options in YAML config file: %r',
                        sorted(illegal_options))
        sys.exit(1)


def config_logging(logging_config_dict):
    """Configure logging from the YAML `logging` section. Without one, log
    to stderr: stdout carries the protocol."""
    if logging_config_dict:
        config = dict(logging_config_dict,
                      version=1,
                      disable_existing_loggers=False)
        logging.config.dictConfig(config)
    else:
        logging.basicConfig(stream=sys.stderr, level=logging.INFO,
                            format=LOG_FORMAT)


if __name__ == "__main__":
    sys.exit(main())
