"""Tests for previewer discovery, IPC packets and the session state machine."""

import io
import struct

import pytest

from ptflreader.errors import DiscoveryError, TransportError
from ptflreader.preview.bridge import Dead, Live, NoSession, PreviewerBridge
from ptflreader.preview.discovery import extract_address, read_address, split_address
from ptflreader.preview.ipc import PACKET_OPEN_IMAGE_V2, encode_open_image

LISTENING = "Initialized IPC, listening on 127.0.0.1:5958\n"


class TestDiscovery:
    """Tests for parsing the previewer's startup output."""

    def test_listening_prefix(self):
        assert extract_address(LISTENING) == "127.0.0.1:5958"

    def test_secondary_prefix_with_escape_codes(self):
        line = "\x1b[32mINFO\x1b[0m Connected to primary instance at localhost:14158\x1b[0m\n"
        assert extract_address(line) == "localhost:14158"

    def test_unrelated_line(self):
        assert extract_address("Loading window...\n") is None

    def test_read_address_skips_noise(self):
        stream = io.BytesIO(b"tev 1.26\nwarming up\n" + LISTENING.encode())
        assert read_address(stream) == "127.0.0.1:5958"

    def test_read_address_closed_stream(self):
        """A stream that ends without a discovery line fails instead of hanging."""
        stream = io.BytesIO(b"nothing to see\nstill nothing\n")
        with pytest.raises(DiscoveryError, match="2 lines"):
            read_address(stream)

    def test_split_address(self):
        assert split_address("127.0.0.1:5958") == ("127.0.0.1", 5958)
        assert split_address("[::1]:5958") == ("::1", 5958)

    def test_split_address_malformed(self):
        with pytest.raises(DiscoveryError):
            split_address("localhost")
        with pytest.raises(DiscoveryError):
            split_address("localhost:http")


class TestIpcPacket:
    """Tests for the open-image packet layout."""

    def test_layout(self):
        packet = encode_open_image("/tmp/a.png")

        body = bytes([PACKET_OPEN_IMAGE_V2, 0]) + b"/tmp/a.png\x00" + b"\x00"
        assert packet == struct.pack("<I", len(body) + 4) + body

    def test_length_counts_itself(self):
        packet = encode_open_image("x", grab_focus=True, channel_selector="R")
        (length,) = struct.unpack("<I", packet[:4])
        assert length == len(packet)
        assert packet[5] == 1

    def test_rejects_nul(self):
        with pytest.raises(ValueError):
            encode_open_image("a\x00b")


class TestBridge:
    """Tests for starting, reusing and restarting the previewer."""

    def make_bridge(self, launcher):
        return PreviewerBridge(executable="tev", spawn=launcher.spawn, connect=launcher.connect)

    def test_first_use_spawns_and_connects(self, fake_launcher, fake_process):
        launcher = fake_launcher([fake_process([LISTENING])])
        bridge = self.make_bridge(launcher)
        assert isinstance(bridge.state, NoSession)

        bridge.ensure_started()

        assert isinstance(bridge.state, Live)
        assert launcher.spawned[0][0] == "tev"
        assert launcher.connected == [("127.0.0.1", 5958)]

    def test_running_process_is_reused(self, fake_launcher, fake_process):
        launcher = fake_launcher([fake_process([LISTENING])])
        bridge = self.make_bridge(launcher)

        bridge.ensure_started()
        bridge.ensure_started()

        assert len(launcher.spawned) == 1

    def test_exited_process_is_replaced(self, fake_launcher, fake_process):
        first = fake_process([LISTENING])
        second = fake_process([LISTENING])
        launcher = fake_launcher([first, second])
        bridge = self.make_bridge(launcher)
        bridge.ensure_started()

        first.returncode = 0
        bridge.ensure_started()

        assert len(launcher.spawned) == 2
        assert bridge.state.process is second
        assert not first.killed

    def test_unknown_state_is_killed_and_replaced(self, fake_launcher, fake_process):
        first = fake_process([LISTENING])
        second = fake_process([LISTENING])
        launcher = fake_launcher([first, second])
        bridge = self.make_bridge(launcher)
        bridge.ensure_started()

        first.poll_error = OSError("wait failed")
        bridge.ensure_started()

        assert first.killed
        assert bridge.state.process is second

    def test_kill_of_vanished_process_is_ignored(self, fake_launcher, fake_process):
        first = fake_process([LISTENING], kill_error=ProcessLookupError())
        second = fake_process([LISTENING])
        launcher = fake_launcher([first, second])
        bridge = self.make_bridge(launcher)
        bridge.ensure_started()

        first.poll_error = OSError("wait failed")
        bridge.ensure_started()

        assert bridge.state.process is second

    def test_kill_failure_is_reported(self, fake_launcher, fake_process):
        first = fake_process([LISTENING], kill_error=PermissionError("not allowed"))
        launcher = fake_launcher([first])
        bridge = self.make_bridge(launcher)
        bridge.ensure_started()

        first.poll_error = OSError("wait failed")
        with pytest.raises(DiscoveryError, match="Failed ending"):
            bridge.ensure_started()

    def test_no_discovery_line(self, fake_launcher, fake_process):
        process = fake_process(["hello\n"])
        launcher = fake_launcher([process])
        bridge = self.make_bridge(launcher)

        with pytest.raises(DiscoveryError):
            bridge.ensure_started()

        assert isinstance(bridge.state, NoSession)
        assert launcher.connected == []

    def test_spawn_failure(self, fake_launcher):
        launcher = fake_launcher([FileNotFoundError("tev")])
        bridge = self.make_bridge(launcher)

        with pytest.raises(DiscoveryError, match="Failed spawning"):
            bridge.ensure_started()

    def test_connect_failure(self, fake_launcher, fake_process):
        launcher = fake_launcher([fake_process([LISTENING])], connect_error=ConnectionRefusedError())
        bridge = self.make_bridge(launcher)

        with pytest.raises(DiscoveryError, match="Failed connecting"):
            bridge.ensure_started()
        assert isinstance(bridge.state, NoSession)

    def test_open_image_sends_packet(self, fake_launcher, fake_process, fake_socket):
        sock = fake_socket()
        launcher = fake_launcher([fake_process([LISTENING])], sockets=[sock])
        bridge = self.make_bridge(launcher)

        bridge.open_image("/tmp/scan.png")

        assert sock.sent == [encode_open_image("/tmp/scan.png", grab_focus=False, channel_selector="")]

    def test_send_failure_keeps_session(self, fake_launcher, fake_process, fake_socket):
        sock = fake_socket(fail_with=BrokenPipeError("gone"))
        launcher = fake_launcher([fake_process([LISTENING])], sockets=[sock])
        bridge = self.make_bridge(launcher)

        with pytest.raises(TransportError):
            bridge.open_image("/tmp/scan.png")

        assert isinstance(bridge.state, Live)
        sock.fail_with = None
        bridge.open_image("/tmp/scan.png")
        assert len(sock.sent) == 1
        assert len(launcher.spawned) == 1

    def test_dead_state_after_exit(self, fake_launcher, fake_process):
        process = fake_process([LISTENING])
        bridge = self.make_bridge(fake_launcher([process]))
        bridge.ensure_started()

        process.returncode = 3
        bridge._probe()

        assert isinstance(bridge.state, Dead)
        assert "3" in bridge.state.reason

    def test_close(self, fake_launcher, fake_process, fake_socket):
        sock = fake_socket()
        bridge = self.make_bridge(fake_launcher([fake_process([LISTENING])], sockets=[sock]))
        bridge.ensure_started()

        bridge.close()

        assert sock.closed
        assert isinstance(bridge.state, NoSession)
