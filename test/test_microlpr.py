import os
import socket
import threading

import microlpr
from microlpd.session import FINISHED, Session


def test_defaults():
    args = microlpr.parse_args(['printhost', 'report.ps'])
    assert args.queue == 'lp'
    assert args.port == microlpr.LPD_PORT
    assert args.job_number is None


def test_missing_file_fails():
    assert microlpr.main(['127.0.0.1', '/nonexistent/report.ps']) == 1


def test_submit_over_tcp(tmp_path):
    queue = tmp_path / 'office'
    queue.mkdir()
    document = tmp_path / 'report.txt'
    document.write_bytes(b'quarterly numbers\n')
    listener = socket.create_server(('127.0.0.1', 0))
    port = listener.getsockname()[1]
    result = {}

    def runner():
        conn, _addr = listener.accept()
        with conn, conn.makefile('rb') as rfile, conn.makefile('wb') as wfile:
            result['outcome'] = Session(rfile, wfile, spool_dir=tmp_path).run()

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()
    with listener:
        status = microlpr.main(['-P', 'office', '-p', str(port), '-n', '7',
                                '-U', 'alice', '127.0.0.1', str(document)])
        thread.join(10)
    assert status == 0
    assert result['outcome'].status == FINISHED
    names = sorted(os.listdir(queue))
    assert [name[:6] for name in names] == ['cfA007', 'dfA007']
    assert (queue / names[1]).read_bytes() == b'quarterly numbers\n'
    control = (queue / names[0]).read_bytes()
    assert b'Palice\n' in control
    assert b'Jreport.txt\n' in control
