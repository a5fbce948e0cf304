"""
Client side of the tev IPC protocol.

Every packet is framed as::

    uint32 little-endian  total length, including these four bytes
    uint8                 packet type
    ...                   payload

Only "open image" (OpenImageV2) is sent. Its payload is a grab-focus byte
followed by the NUL-terminated image path and channel selector.
"""

import struct

from ptflreader.errors import TransportError
from ptflreader.tracer import get_tracer

PACKET_OPEN_IMAGE_V2 = 7


def _cstring(text):
    encoded = text.encode("utf-8")
    if b"\x00" in encoded:
        raise ValueError(f"string contains NUL byte: {text!r}")
    return encoded + b"\x00"


def encode_packet(packet_type, payload):
    """Frame a payload with its length prefix and type byte."""
    body = struct.pack("<B", packet_type) + payload
    return struct.pack("<I", len(body) + 4) + body


def encode_open_image(image_path, grab_focus=False, channel_selector=""):
    """Encode an OpenImageV2 packet."""
    payload = struct.pack("<B", 1 if grab_focus else 0) + _cstring(image_path) + _cstring(channel_selector)
    return encode_packet(PACKET_OPEN_IMAGE_V2, payload)


class TevTransport:
    """Packet sender over a connected stream socket."""

    def __init__(self, sock):
        self.sock = sock

    def send(self, packet):
        try:
            self.sock.sendall(packet)
        except OSError as e:
            raise TransportError(f"Failed sending to previewer: {e}") from e

    def open_image(self, image_path, grab_focus=False, channel_selector=""):
        """Ask the viewer to open ``image_path``."""
        try:
            packet = encode_open_image(image_path, grab_focus, channel_selector)
        except ValueError as e:
            raise TransportError(str(e)) from e
        self.send(packet)
        get_tracer().event(f"Sent open-image request for {image_path}")

    def close(self):
        self.sock.close()
