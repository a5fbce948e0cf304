"""
Address discovery from the previewer's standard output.

A freshly started viewer prints either of::

    Initialized IPC, listening on 127.0.0.1:5958
    Connected to primary instance at 127.0.0.1:5958

possibly followed by terminal escape codes.
"""

from ptflreader.errors import DiscoveryError
from ptflreader.tracer import get_tracer

DISCOVERY_PREFIXES = (
    "Initialized IPC, listening on ",
    "Connected to primary instance at ",
)


def extract_address(line):
    """
    Return the address announced on ``line``, or None.

    The address runs from the end of the prefix to the first control
    character (escape codes included) or the end of the line.
    """
    for prefix in DISCOVERY_PREFIXES:
        start = line.find(prefix)
        if start < 0:
            continue
        rest = line[start + len(prefix):]
        end = next((i for i, ch in enumerate(rest) if ord(ch) < 0x20 or ord(ch) == 0x7f), len(rest))
        return rest[:end]
    return None


def split_address(address):
    """Split ``host:port`` into (host, int port)."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise DiscoveryError(f"Malformed previewer address: {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise DiscoveryError(f"Malformed previewer port in {address!r}") from None
    if not 0 < port_number < 65536:
        raise DiscoveryError(f"Previewer port out of range in {address!r}")
    return host.strip("[]"), port_number


def read_address(stream):
    """
    Read lines from ``stream`` until a discovery line appears.

    Blocks as long as the stream stays open without announcing an address.

    Raises:
        DiscoveryError: the stream closed first
    """
    tracer = get_tracer()
    skipped = 0
    for raw in stream:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        address = extract_address(line)
        if address is not None:
            tracer.event(f"Previewer announced {address}", skipped_lines=skipped)
            return address
        skipped += 1

    raise DiscoveryError(f"Failed reading IPC address from previewer ({skipped} lines read before output closed)")
