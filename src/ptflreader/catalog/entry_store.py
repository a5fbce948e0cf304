"""
Ordered catalog of decoded scans.

Keys are ``(label, sequence)`` pairs. Listing order is insertion order;
overwriting an existing key keeps its original position.
"""

import fnmatch
import math
from collections import OrderedDict

from ptflreader.errors import CatalogError
from ptflreader.models import ScanEntry, format_key
from ptflreader.tracer import get_tracer, trace


def sample_sort_key(sample):
    """
    Total ordering over samples: angle first, then range.

    Raises CatalogError on NaN, which has no place in that ordering.
    """
    angle, rng = sample
    if math.isnan(angle) or math.isnan(rng):
        raise CatalogError(f"cannot sort sample containing NaN: ({angle}, {rng})")
    return (angle, rng)


class EntryStore:
    """Insertion-ordered mapping from composite key to ScanEntry."""

    def __init__(self):
        self._entries = OrderedDict()

    def insert(self, key, entry):
        """Add or overwrite ``key``."""
        self._entries[key] = entry

    def get(self, key):
        return self._entries.get(key)

    def contains(self, key):
        return key in self._entries

    def __contains__(self, key):
        return self.contains(key)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def iterate(self):
        """All ``(key, entry)`` pairs in insertion order."""
        return list(self._entries.items())

    items = iterate

    def match(self, label_pattern):
        """Entries whose label matches a shell-style pattern, in order."""
        return [
            entry for (label, _), entry in self._entries.items()
            if fnmatch.fnmatchcase(label, label_pattern)
        ]

    @trace(label="combine_entries")
    def combine(self, target_key, source_keys):
        """
        Merge the samples of ``source_keys`` into a new entry at ``target_key``.

        The merged samples are sorted by angle, then range. Nothing is
        inserted unless every check passes.

        Raises:
            CatalogError: target exists, a source is missing, no sources
                were given, or a sample holds NaN
        """
        tracer = get_tracer()

        if target_key in self._entries:
            raise CatalogError(f"target {format_key(target_key)} already exists")
        if not source_keys:
            raise CatalogError("no source entries given")

        merged = []
        for key in source_keys:
            entry = self._entries.get(key)
            if entry is None:
                raise CatalogError(f"source {format_key(key)} not found")
            merged.extend(entry.samples)

        merged.sort(key=sample_sort_key)

        label, sequence = target_key
        combined = ScanEntry(label=label, sequence=sequence, samples=merged)
        self.insert(target_key, combined)

        tracer.event(f"Combined {len(source_keys)} entries into {format_key(target_key)}",
                     samples=len(merged))
        return combined
