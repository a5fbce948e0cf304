"""
Lifecycle of the external live previewer.

The bridge owns at most one viewer process and one connection to it. Its
session is always one of:

- NoSession: nothing started yet, or the last session was discarded
- Live: process believed running, transport connected
- Dead: process found exited (or unprobeable); replaced on next use

``ensure_started`` moves Dead to NoSession and NoSession to Live. Process
creation and connection are injected so the policy can be tested without
spawning anything.
"""

import socket
import subprocess
from dataclasses import dataclass
from typing import Any, Union

from ptflreader.errors import DiscoveryError
from ptflreader.preview.discovery import read_address, split_address
from ptflreader.preview.ipc import TevTransport
from ptflreader.tracer import get_tracer, trace


@dataclass(frozen=True)
class NoSession:
    pass


@dataclass(frozen=True)
class Live:
    process: Any
    transport: TevTransport


@dataclass(frozen=True)
class Dead:
    process: Any
    reason: str


SessionState = Union[NoSession, Live, Dead]


def spawn_previewer(executable):
    """Start the viewer with stdout captured and stdin/stderr discarded."""
    return subprocess.Popen(
        [executable],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        stdin=subprocess.DEVNULL,
    )


def connect_previewer(host, port):
    return socket.create_connection((host, port))


class PreviewerBridge:
    """Starts, probes and restarts the viewer; forwards open-image requests."""

    def __init__(self, executable="tev", spawn=spawn_previewer, connect=connect_previewer, notify=None):
        self.executable = executable
        self._notify = notify or (lambda message: None)
        self._spawn = spawn
        self._connect = connect
        self.state: SessionState = NoSession()

    def _probe(self):
        """Move a Live session whose process ended to Dead."""
        tracer = get_tracer()
        state = self.state
        if not isinstance(state, Live):
            return

        try:
            returncode = state.process.poll()
        except OSError as e:
            tracer.event(f"Previewer in unknown state ({e}), killing it", level="WARN")
            self._notify("Previewer has an unknown status, killing old instance")
            self._kill(state.process)
            self._close_transport(state.transport)
            self.state = Dead(state.process, f"unknown status: {e}")
            return

        if returncode is not None:
            tracer.event(f"Previewer exited with status {returncode}")
            self._close_transport(state.transport)
            self.state = Dead(state.process, f"exited with status {returncode}")

    def _kill(self, process):
        try:
            process.kill()
        except ProcessLookupError:
            pass
        except OSError as e:
            raise DiscoveryError(f"Failed ending previous previewer process: {e}") from e

    @staticmethod
    def _close_transport(transport):
        try:
            transport.close()
        except OSError:
            pass

    @trace(label="ensure_previewer")
    def ensure_started(self):
        """
        Make sure a live session exists.

        No-op when the current process is still running. Otherwise spawns a
        new viewer, waits for its discovery line and connects to it.

        Raises:
            DiscoveryError: spawn failed, output closed before an address
                was announced, or the connection failed
        """
        tracer = get_tracer()

        self._probe()
        if isinstance(self.state, Live):
            return self.state
        if isinstance(self.state, Dead):
            self.state = NoSession()

        self._notify("Starting new previewer instance...")
        try:
            process = self._spawn(self.executable)
        except OSError as e:
            raise DiscoveryError(f"Failed spawning {self.executable}: {e}") from e

        try:
            address = read_address(process.stdout)
            host, port = split_address(address)
        except DiscoveryError:
            self._abandon(process)
            raise
        finally:
            process.stdout.close()

        try:
            sock = self._connect(host, port)
        except OSError as e:
            self._abandon(process)
            raise DiscoveryError(f"Failed connecting to previewer at {address}: {e}") from e

        self.state = Live(process, TevTransport(sock))
        tracer.event(f"Previewer session live at {address}")
        return self.state

    def _abandon(self, process):
        """Stop a process that never became a session."""
        try:
            self._kill(process)
        except DiscoveryError as e:
            get_tracer().event(str(e), level="WARN")

    def open_image(self, path):
        """
        Open ``path`` in the viewer, starting it first if needed.

        A send failure raises TransportError and leaves the session in place.
        """
        session = self.ensure_started()
        session.transport.open_image(path, grab_focus=False, channel_selector="")

    def close(self):
        """Drop the connection; the viewer process keeps running."""
        if isinstance(self.state, Live):
            self._close_transport(self.state.transport)
        self.state = NoSession()
