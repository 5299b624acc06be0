import os
import subprocess
import sys

import microlpdd


CONTROL = b'Halice\nPbob\nJreport\nldfA001host\n'
DATA = b'%!PS\n(hello) show\nshowpage\n' * 20

HELPER_SCRIPT = '''#!/bin/sh
env > "$1"
pwd -P > "$1.cwd"
'''


def job_stream():
    return (b'\x02myqueue\n'
            + b'\x02%d cfA001host\n' % len(CONTROL) + CONTROL + b'\x00'
            + b'\x03%d dfA001host\n' % len(DATA) + DATA + b'\x00')


def read_environment(path):
    environment = {}
    for line in path.read_text().splitlines():
        name, sep, value = line.partition('=')
        if sep:
            environment[name] = value
    return environment


def test_daemon_hands_complete_job_to_helper(tmp_path):
    spool = tmp_path / 'spool'
    queue = spool / 'myqueue'
    queue.mkdir(parents=True)
    helper = tmp_path / 'print-helper'
    helper.write_text(HELPER_SCRIPT)
    helper.chmod(0o755)
    environment_file = tmp_path / 'helper-environment'
    project_root = os.path.dirname(os.path.abspath(microlpdd.__file__))
    child_environment = dict(os.environ, PYTHONPATH=project_root)

    result = subprocess.run(
        [sys.executable, microlpdd.__file__, str(spool),
         str(helper), str(environment_file)],
        input=job_stream(), stdout=subprocess.PIPE, stderr=subprocess.PIPE,
        env=child_environment, timeout=60)

    assert result.returncode == 0, result.stderr
    assert result.stdout == b'\x00\x00\x00\x00'
    assert os.listdir(queue) == ['dfA001host']
    assert (queue / 'dfA001host').stat().st_size == len(DATA)
    seen = read_environment(environment_file)
    assert seen['DATAFILE'] == 'dfA001host'
    assert seen['H'] == 'alice'
    assert seen['P'] == 'bob'
    assert seen['J'] == 'report'
    assert seen['l'] == 'dfA001host'
    cwd_file = tmp_path / 'helper-environment.cwd'
    assert cwd_file.read_text().strip() == os.path.realpath(queue)


def test_daemon_rejects_incomplete_job(tmp_path):
    queue = tmp_path / 'myqueue'
    queue.mkdir()
    project_root = os.path.dirname(os.path.abspath(microlpdd.__file__))
    stream = (b'\x02myqueue\n'
              + b'\x02%d cfA001host\n' % len(CONTROL) + CONTROL + b'\x00')

    result = subprocess.run(
        [sys.executable, microlpdd.__file__, str(tmp_path), 'true'],
        input=stream, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
        env=dict(os.environ, PYTHONPATH=project_root), timeout=60)

    assert result.returncode == 1
    assert result.stdout == b'\x00\x00'
    assert os.listdir(queue) == []
