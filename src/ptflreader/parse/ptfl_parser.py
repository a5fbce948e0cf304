"""
Scan-list (.ptfl) parser.

The format is a sequence of blocks separated by optional blank lines. Each
block is a header line holding a positive sample count N followed by exactly
N ``angle,range`` lines::

    2
    0.0, 1.0
    1.5708, 2.0

The parser is a small state machine. Its state survives between ``parse``
calls so a block may be continued by the next file, and any error poisons it
until ``renew`` is called.
"""

import math
import os
from dataclasses import dataclass, field
from typing import List, Union

from ptflreader.errors import FormatError
from ptflreader.models import Sample, ScanEntry
from ptflreader.tracer import get_tracer, trace


@dataclass(frozen=True)
class Idle:
    """Between blocks."""


@dataclass(frozen=True)
class CollectingBlock:
    """Inside a block with ``remaining`` data lines still expected."""
    remaining: int
    samples: List[Sample] = field(default_factory=list)


@dataclass(frozen=True)
class Poisoned:
    """A previous parse failed; the parser must be renewed."""
    reason: str


ParserState = Union[Idle, CollectingBlock, Poisoned]


def parse_header(line):
    """Parse a block header into its positive sample count, or None."""
    try:
        count = int(line.strip())
    except ValueError:
        return None
    return count if count > 0 else None


def parse_sample(line):
    """
    Parse an ``angle,range`` line.

    Raises ValueError describing the first violation.
    """
    fields = line.split(",")
    if len(fields) != 2:
        raise ValueError(f"expected 2 comma separated fields, got {len(fields)}")

    values = []
    for name, text in zip(("angle", "range"), fields):
        try:
            value = float(text.strip())
        except ValueError:
            raise ValueError(f"expected float for {name}, got {text.strip()!r}") from None
        if not math.isfinite(value):
            raise ValueError(f"{name} must be finite, got {text.strip()!r}")
        values.append(value)

    return Sample(*values)


class PtflParser:
    """
    Incremental parser feeding decoded blocks into a catalog.

    Call ``renew`` after any FormatError before parsing again. A successful
    parse can end inside a block; the next ``parse`` continues that block
    unless the parser is renewed first.
    """

    def __init__(self):
        self.state: ParserState = Idle()

    def renew(self):
        """Drop any partial block or error state."""
        self.state = Idle()

    @property
    def at_block_boundary(self):
        return isinstance(self.state, Idle)

    @trace(label="parse_ptfl")
    def parse(self, path, catalog):
        """
        Parse one file, inserting every completed block into ``catalog``.

        Entries are keyed ``(basename(path), n)`` where n counts blocks
        completed during this call, starting at 0. Blocks completed before
        an error stay in the catalog.

        Args:
            path: scan file to read
            catalog: anything with ``insert(key, entry)``

        Returns:
            number of blocks completed during this call

        Raises:
            FormatError: unreadable file, malformed line, or poisoned parser
        """
        tracer = get_tracer()

        if isinstance(self.state, Poisoned):
            raise FormatError(f"parser must be renewed after: {self.state.reason}", path=path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FormatError(f"failed reading file: {e}", path=path) from e

        label = os.path.basename(path)
        completed = 0
        state = self.state

        for line_no, line in enumerate(text.splitlines(), start=1):
            try:
                state, entry_samples = self._step(state, line)
            except ValueError as e:
                self.state = Poisoned(f"{path}:{line_no}: {e}")
                raise FormatError(str(e), path=path, line_no=line_no, line=line) from None

            if entry_samples is not None:
                entry = ScanEntry(label=label, sequence=completed, samples=entry_samples)
                catalog.insert(entry.key, entry)
                completed += 1

        self.state = state

        if isinstance(state, CollectingBlock):
            tracer.event(f"{label} ended inside a block, {state.remaining} lines pending", level="WARN")
        tracer.event(f"Parsed {completed} blocks from {label}")

        return completed

    def _step(self, state, line):
        """
        Advance the state machine by one line.

        Returns (next_state, samples) where samples is the finished block,
        or None when no block completed on this line.
        """
        if isinstance(state, Idle):
            if not line.strip():
                return state, None
            count = parse_header(line)
            if count is None:
                raise ValueError("expected a positive block length or a blank line")
            return CollectingBlock(remaining=count), None

        state.samples.append(parse_sample(line))
        if state.remaining == 1:
            return Idle(), state.samples
        return CollectingBlock(remaining=state.remaining - 1, samples=state.samples), None
