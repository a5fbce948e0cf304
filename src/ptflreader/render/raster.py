"""
Raster backend: anti-aliased strokes on an opaque black RGB buffer.

Each layer is stroked into a coverage mask first and then blended over the
canvas with the layer opacity, so overlapping paths of one layer do not
darken or brighten each other.
"""

import cv2
import numpy as np

from ptflreader.errors import RenderError
from ptflreader.io.save_artifacts import save_image
from ptflreader.render.backends import RenderBackend
from ptflreader.render.color import hsl_to_rgb
from ptflreader.render.layers import SIGNAL_WIDTH_RASTER
from ptflreader.render.projection import canvas_size
from ptflreader.tracer import get_tracer, trace

# cv2 fixed-point precision: coordinates are scaled by 2**SHIFT
SHIFT = 4

# fixed-point coordinates are clamped here so the int32 cast cannot wrap
FIXED_LIMIT = 1 << 28

# largest canvas side the raster backend will allocate
MAX_CANVAS_SIDE = 16384


def _to_fixed(path):
    pts = np.round(np.asarray(path, dtype=np.float64) * (1 << SHIFT))
    pts = np.clip(pts, -FIXED_LIMIT, FIXED_LIMIT)
    return pts.astype(np.int32).reshape(-1, 1, 2)


def stroke_thickness(width):
    """Integer pixel thickness for a stroke width, within what cv2 accepts."""
    return min(max(1, int(round(width))), MAX_CANVAS_SIDE)


def composite_layer(canvas, layer):
    """Blend one layer onto an RGB uint8 canvas in place."""
    height, width = canvas.shape[:2]
    mask = np.zeros((height, width), dtype=np.uint8)
    polylines = [_to_fixed(path) for path in layer.paths if len(path) > 0]
    if not polylines:
        return canvas

    thickness = stroke_thickness(layer.style.width)
    cv2.polylines(
        mask, polylines, isClosed=True, color=255,
        thickness=thickness, lineType=cv2.LINE_AA, shift=SHIFT,
    )

    # blend only the stroked region
    corners = np.concatenate([p.reshape(-1, 2) for p in polylines]) >> SHIFT
    pad = thickness + 2
    x0, y0 = np.maximum(corners.min(axis=0) - pad, 0)
    x1, y1 = np.minimum(corners.max(axis=0) + pad + 1, [width, height])
    if x0 >= x1 or y0 >= y1:
        return canvas

    roi = canvas[y0:y1, x0:x1]
    alpha = (mask[y0:y1, x0:x1].astype(np.float32) / 255.0) * layer.style.opacity
    alpha = alpha[:, :, np.newaxis]
    color = np.array(
        hsl_to_rgb(layer.style.hue, layer.style.saturation, layer.style.lightness),
        dtype=np.float32,
    )
    blended = roi.astype(np.float32) * (1.0 - alpha) + color * alpha
    roi[:] = np.clip(np.round(blended), 0, 255).astype(np.uint8)
    return canvas


class RasterBackend(RenderBackend):
    """PNG output through OpenCV."""

    name = "png"
    extension = "png"
    signal_width_factor = SIGNAL_WIDTH_RASTER

    @trace(label="render_raster")
    def render(self, layer_set, scale, clip_pos):
        """
        Draw every layer onto a fresh canvas.

        Returns:
            RGB uint8 array of shape (size, size, 3)

        Raises:
            RenderError: canvas side outside 1..MAX_CANVAS_SIDE
        """
        tracer = get_tracer()

        size = canvas_size(scale, clip_pos)
        if not 1 <= size <= MAX_CANVAS_SIDE:
            raise RenderError(
                f"Canvas side of {size} px is outside 1..{MAX_CANVAS_SIDE}; adjust --scale or --clip"
            )
        canvas = np.zeros((size, size, 3), dtype=np.uint8)
        for layer in layer_set.all_layers():
            composite_layer(canvas, layer)

        tracer.event(f"Rasterized {len(layer_set.all_layers())} layers", canvas=canvas)
        return canvas

    def save(self, image, path):
        save_image(image, path)
