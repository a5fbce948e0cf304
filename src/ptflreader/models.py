"""
Pydantic data models for PTFL Reader.

Decoded scans and rendered layer sets flow through these models. Entries
are immutable once built; layer sets are rebuilt per render request.
"""

import math
from typing import List, NamedTuple, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


EntryKey = Tuple[str, int]


class Sample(NamedTuple):
    """One polar sample. A range of exactly 0 means no return."""
    angle: float  # radians
    range: float  # meters


class ScanEntry(BaseModel):
    """A decoded block of samples, keyed by (label, sequence)."""
    label: str
    sequence: int = Field(..., ge=0)
    samples: List[Sample] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("samples")
    @classmethod
    def _finite_samples(cls, samples):
        for index, (angle, rng) in enumerate(samples):
            if not (math.isfinite(angle) and math.isfinite(rng)):
                raise ValueError(f"sample {index} is not finite: ({angle}, {rng})")
        return samples

    @property
    def key(self):
        return (self.label, self.sequence)

    def __len__(self):
        return len(self.samples)


class LayerStyle(BaseModel):
    """Stroke styling shared by every path of one layer."""
    hue: float = Field(..., ge=0.0, le=360.0)  # degrees
    saturation: float = Field(..., ge=0.0, le=100.0)  # percent
    lightness: float = Field(..., ge=0.0, le=100.0)  # percent
    opacity: float = Field(..., ge=0.0, le=1.0)
    width: float = Field(..., gt=0.0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class RenderLayer(BaseModel):
    """A group of closed paths drawn with one style."""
    style: LayerStyle
    paths: List[List[Tuple[float, float]]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class RenderLayerSet(BaseModel):
    """
    Outline, signal and marker layers for one or more entries.

    Backends draw every outline first, then every signal path, then every
    marker, so combined sets keep each kind stacked together.
    """
    outline: List[RenderLayer] = Field(default_factory=list)
    signal: List[RenderLayer] = Field(default_factory=list)
    markers: List[RenderLayer] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def combine(self, other):
        """Concatenate each layer list, this set first."""
        return RenderLayerSet(
            outline=self.outline + other.outline,
            signal=self.signal + other.signal,
            markers=self.markers + other.markers,
        )

    def all_layers(self):
        """Layers in drawing order."""
        return self.outline + self.signal + self.markers


def combine_layer_sets(layer_sets):
    """Fold a sequence of layer sets into one, preserving order."""
    combined = RenderLayerSet()
    for layer_set in layer_sets:
        combined = combined.combine(layer_set)
    return combined


def format_key(key):
    """Render a composite key the way users type it."""
    label, sequence = key
    return f"{label} {sequence}"
