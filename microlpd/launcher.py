# -*- coding: utf-8 -*-

"""Hand a complete job to the helper program. The control file is consumed
into the helper's environment, standard I/O is pointed at /dev/null with a
non-forking `daemon.DaemonContext`, and the process image is replaced. From
here on nothing can reach the peer."""


import logging
import os
import sys
import syslog

from daemon import DaemonContext

from .control import helper_environment


logger = logging.getLogger(__name__)


def launch_helper(job, helper, daemon_options=None, protected=()):
    """Replace the current process with `helper` (program and arguments)
    working on `job`. Does not return: if the program cannot be executed the
    process exits with status 0, since the job was received correctly and
    the failure is the helper's."""
    environment = helper_environment(job, protected=protected)
    options = dict(daemon_options or {})
    options.setdefault('working_directory', str(job.directory))
    options.setdefault('detach_process', False)
    options.setdefault('umask', 0o022)
    logger.info('executing %r for %s', helper, job.data_name)
    # Handlers can hold descriptors the context is about to close.
    for handler in logging.getLogger().handlers:
        handler.flush()
    context = DaemonContext(signal_map={}, **options)
    with context:
        try:
            os.execvpe(helper[0], helper, environment)
        except OSError as e:
            report_exec_failure(helper, e.strerror)
        except ValueError as e:
            report_exec_failure(helper, e)
        sys.exit(0)


def report_exec_failure(helper, reason):
    """Standard I/O is gone by now; syslog is the only way out."""
    syslog.openlog('microlpd', syslog.LOG_PID, syslog.LOG_LPR)
    syslog.syslog(syslog.LOG_ERR, f"can't execute {helper[0]}: {reason}")
