"""
Pytest configuration and fixtures for PortManager tests.

Provides canned lsof output, fake scanners/process managers for the
controller tests, and a helper for building subprocess results.
"""
import os
import subprocess
import threading

import pytest

# Qt must not try to open a display on CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from portmanager.core import PortRecord, Protocol, KillExecutionError


TCP_TAGGED_OUTPUT = """\
p443
cnginx
f6
n*:443
f7
n*:80
p1201
cpostgres
f5
n127.0.0.1:5432
f6
n[::1]:5432
"""

UDP_TAGGED_OUTPUT = """\
p88
cmDNSResponder
f4
n*:5353
p512
csystemd-resolved
f12
n127.0.0.53:53
"""

TCP_COLUMNAR_OUTPUT = """\
COMMAND    PID   USER   FD   TYPE DEVICE SIZE/OFF NODE NAME
nginx      443   root    6u  IPv4  20231      0t0  TCP *:443 (LISTEN)
nginx      443   root    7u  IPv4  20232      0t0  TCP *:80 (LISTEN)
postgres  1201   pg      5u  IPv6  30112      0t0  TCP [::1]:5432 (LISTEN)
"""


def make_record(port, protocol=Protocol.TCP, pid=100, name="proc", address="*"):
    state = "LISTEN" if protocol is Protocol.TCP else "UDP"
    return PortRecord(port=port, protocol=protocol, state=state,
                      process_name=name, pid=pid, local_address=address)


def completed(stdout="", stderr="", returncode=0):
    """Build a subprocess.CompletedProcess like subprocess.run returns."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class FakeScanner:
    """Stands in for PortScanner; returns queued results or raises them."""

    def __init__(self, *results):
        self.results = list(results) or [[]]
        self.calls = 0
        self.gate = None

    def scan(self):
        if self.gate is not None:
            self.gate.wait(5)
        index = min(self.calls, len(self.results) - 1)
        self.calls += 1
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeProcessManager:
    def __init__(self, fail=False):
        self.fail = fail
        self.killed = []

    def kill_process(self, pid):
        self.killed.append(pid)
        if self.fail:
            raise KillExecutionError(f"Failed to kill process {pid}: Operation not permitted")
        return f"Force killed process (PID: {pid})"


@pytest.fixture
def gate():
    """An event a FakeScanner waits on, to hold a scan in flight."""
    event = threading.Event()
    yield event
    event.set()
