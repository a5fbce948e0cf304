"""Pytest fixtures for PTFL Reader tests."""

import io
import os
import tempfile

import pytest


TWO_BLOCK_SCAN = """\
3
0.0, 1.0
1.0, 0.0
2.0, 1.5

2
0.5,0.25
-0.5 , 0.75
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def write_scan(temp_dir):
    """Write scan text to a named file inside temp_dir and return its path."""
    def _write(name, text):
        path = os.path.join(temp_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path
    return _write


@pytest.fixture
def example_scan(write_scan):
    """Single block with two samples."""
    return write_scan("a.ptfl", "2\n0.0, 1.0\n1.5708, 2.0\n")


@pytest.fixture
def two_block_scan(write_scan):
    return write_scan("two.ptfl", TWO_BLOCK_SCAN)


@pytest.fixture
def store():
    from ptflreader.catalog.entry_store import EntryStore
    return EntryStore()


@pytest.fixture
def default_config(temp_dir):
    """Default configuration writing into temp_dir."""
    from ptflreader.config import AppConfig
    config = AppConfig()
    config.output.out_dir = temp_dir
    config.output.workers = 2
    config.preview.temp_dir = temp_dir
    return config


class FakeProcess:
    """Stands in for subprocess.Popen."""

    def __init__(self, lines, returncode=None, poll_error=None, kill_error=None):
        self.stdout = io.BytesIO("".join(lines).encode("utf-8"))
        self.returncode = returncode
        self.poll_error = poll_error
        self.kill_error = kill_error
        self.killed = False

    def poll(self):
        if self.poll_error is not None:
            raise self.poll_error
        return self.returncode

    def kill(self):
        if self.kill_error is not None:
            raise self.kill_error
        self.killed = True


class FakeSocket:
    """Records everything sent; can be told to fail."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.closed = False
        self.fail_with = fail_with

    def sendall(self, data):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(bytes(data))

    def close(self):
        self.closed = True


class FakeLauncher:
    """Hands out prepared processes and sockets, recording every call."""

    def __init__(self, processes, sockets=None, connect_error=None):
        self.processes = list(processes)
        self.sockets = list(sockets or [])
        self.connect_error = connect_error
        self.spawned = []
        self.connected = []

    def spawn(self, executable):
        process = self.processes.pop(0)
        if isinstance(process, Exception):
            raise process
        self.spawned.append((executable, process))
        return process

    def connect(self, host, port):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected.append((host, port))
        sock = self.sockets.pop(0) if self.sockets else FakeSocket()
        return sock


@pytest.fixture
def fake_process():
    return FakeProcess


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def fake_launcher():
    return FakeLauncher
