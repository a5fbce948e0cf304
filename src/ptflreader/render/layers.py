"""
Layer construction for rendered scans.

Each entry becomes three layers sharing one hue and lightness:

- outline: every sample in order, closed, no-return samples included
- signal: only samples with a return, closed; omitted when there are none
- markers: one small square per sample with a return

Geometry is identical for every backend. Only the signal stroke width
differs: raster output uses 0.002 * scale, vector output 0.003 * scale.
"""

from dataclasses import dataclass

from ptflreader.models import LayerStyle, RenderLayer, RenderLayerSet
from ptflreader.render.projection import (
    MARKER_HALF_WIDTH, marker_square, nonzero_mask, project_samples,
)
from ptflreader.tracer import get_tracer, trace


@dataclass(frozen=True)
class LayerRecipe:
    """Saturation (percent), opacity and stroke width factor of a layer kind."""
    saturation: float
    opacity: float
    width_factor: float

    def style(self, hue, lightness, scale):
        return LayerStyle(
            hue=hue % 360.0,
            saturation=self.saturation,
            lightness=lightness,
            opacity=self.opacity,
            width=self.width_factor * scale,
        )


OUTLINE_RECIPE = LayerRecipe(saturation=40.0, opacity=0.3, width_factor=0.0005)
MARKER_RECIPE = LayerRecipe(saturation=100.0, opacity=0.8, width_factor=0.002)
SIGNAL_SATURATION = 70.0
SIGNAL_OPACITY = 0.6
SIGNAL_WIDTH_RASTER = 0.002
SIGNAL_WIDTH_VECTOR = 0.003


def signal_recipe(width_factor):
    return LayerRecipe(saturation=SIGNAL_SATURATION, opacity=SIGNAL_OPACITY, width_factor=width_factor)


def _as_path(points):
    return [(float(x), float(y)) for x, y in points]


@trace(label="build_layer_set")
def build_layer_set(samples, scale, clip_pos, hue, lightness, signal_width=SIGNAL_WIDTH_VECTOR):
    """
    Project one entry's samples into its outline, signal and marker layers.

    Args:
        samples: sequence of (angle, range) pairs, in scan order
        scale: pixels (or vector units) per meter
        clip_pos: half canvas extent in meters
        hue: degrees, 0-360
        lightness: percent, 0-100
        signal_width: signal stroke width factor of the target backend

    Returns:
        RenderLayerSet with one outline layer and, when any sample has a
        return, one signal layer and one marker layer
    """
    tracer = get_tracer()

    points = project_samples(samples, scale, clip_pos)
    returns = nonzero_mask(samples)
    layer_set = RenderLayerSet()

    if len(points) == 0:
        tracer.event("Entry has no samples, nothing to draw", level="WARN")
        return layer_set

    layer_set.outline.append(RenderLayer(
        style=OUTLINE_RECIPE.style(hue, lightness, scale),
        paths=[_as_path(points)],
    ))

    signal_points = points[returns]
    if len(signal_points) == 0:
        tracer.event("Entry has no returns, signal and marker layers omitted")
        return layer_set

    layer_set.signal.append(RenderLayer(
        style=signal_recipe(signal_width).style(hue, lightness, scale),
        paths=[_as_path(signal_points)],
    ))

    half_width = MARKER_HALF_WIDTH * scale
    layer_set.markers.append(RenderLayer(
        style=MARKER_RECIPE.style(hue, lightness, scale),
        paths=[marker_square(point, half_width) for point in _as_path(signal_points)],
    ))

    return layer_set
