"""
Render orchestration for PTFL Reader.

Turns catalog entries into image files: single entries, multi-entry
composites, and parallel fan-out over many entries.
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ptflreader.errors import RenderError
from ptflreader.models import ScanEntry, combine_layer_sets
from ptflreader.tracer import get_tracer, trace


@dataclass
class RenderJob:
    """One output file made from one or more (entry, hue) pairs."""
    entries: List[Tuple[ScanEntry, float]]
    path: str


@dataclass
class BatchResult:
    """Outcome of a fan-out render."""
    written: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (path, message)

    @property
    def total(self):
        return len(self.written) + len(self.failures)

    @property
    def ok(self):
        return not self.failures


def assign_hues(explicit_hues):
    """
    Fill in missing hues.

    Entries without an explicit hue get evenly spaced hues over [0, 360),
    starting at 0, in the order they appear.

    >>> assign_hues([None, 90.0, None])
    [0.0, 90.0, 180.0]
    """
    unspecified = sum(1 for hue in explicit_hues if hue is None)
    if unspecified == 0:
        return list(explicit_hues)

    step = 360.0 / unspecified
    hues = []
    auto_index = 0
    for hue in explicit_hues:
        if hue is None:
            hues.append(auto_index * step)
            auto_index += 1
        else:
            hues.append(hue)
    return hues


def entry_output_path(out_dir, key, backend):
    """``<out_dir>/<label>-<seq>.<ext>``"""
    label, sequence = key
    return os.path.join(out_dir, backend.output_name(f"{label}-{sequence}"))


@trace(label="render_to_file")
def render_to_file(entries, path, backend, scale, clip_pos, lightness):
    """
    Render one or more entries into a single image file.

    Args:
        entries: list of (ScanEntry, hue) pairs, drawn in order
        path: output file path
        backend: RenderBackend instance
        scale: pixels (or vector units) per meter
        clip_pos: half canvas extent in meters
        lightness: percent, shared by every layer

    Returns:
        path written

    Raises:
        RenderError: the canvas could not be sized or allocated
        OSError: the file could not be written
    """
    tracer = get_tracer()

    try:
        layer_sets = [
            backend.layers_for(entry, hue, lightness, scale, clip_pos)
            for entry, hue in entries
        ]
        layer_set = combine_layer_sets(layer_sets)
        image = backend.render(layer_set, scale, clip_pos)
    except (MemoryError, OverflowError) as e:
        raise RenderError(f"Cannot render at scale {scale} with clip {clip_pos}: {type(e).__name__}") from e
    backend.save(image, path)

    tracer.event(f"Wrote {len(entries)} entries to {path}")
    return path


def _run_job(job, backend, scale, clip_pos, lightness):
    return render_to_file(job.entries, job.path, backend, scale, clip_pos, lightness)


@trace(label="render_batch")
def render_batch(jobs, backend, scale, clip_pos, lightness, workers=4):
    """
    Render independent jobs concurrently.

    Each worker reads its own entries and writes its own file. Failures are
    collected per job; one failing job never stops the others.

    Returns:
        BatchResult with written paths in job order and every failure
    """
    tracer = get_tracer()
    result = BatchResult()
    if not jobs:
        return result

    done = {}
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="render") as pool:
        futures = {
            pool.submit(_run_job, job, backend, scale, clip_pos, lightness): job
            for job in jobs
        }
        for future in as_completed(futures):
            job = futures[future]
            try:
                done[job.path] = future.result()
            except Exception as e:
                tracer.event(f"Render failed for {job.path}: {e}", level="ERROR")
                result.failures.append((job.path, str(e)))

    result.written = [job.path for job in jobs if job.path in done]
    order = {job.path: index for index, job in enumerate(jobs)}
    result.failures.sort(key=lambda failure: order[failure[0]])
    return result


def jobs_for_entries(entries, out_dir, backend, hue: Optional[float] = None):
    """
    One job per entry, written to ``<label>-<seq>.<ext>``.

    With no hue, hues are spread evenly over the entries.
    """
    hues = assign_hues([hue] * len(entries))
    return [
        RenderJob(entries=[(entry, entry_hue)], path=entry_output_path(out_dir, entry.key, backend))
        for entry, entry_hue in zip(entries, hues)
    ]
