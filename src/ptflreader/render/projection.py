"""
Polar-to-Cartesian projection onto a square canvas.

A sample (theta, r) lands at::

    x = scale * (r * cos(theta) + clip_pos)
    y = scale * (r * sin(theta) + clip_pos)

so the sensor sits at the canvas center and the canvas spans
``2 * clip_pos`` meters on each side.
"""

import numpy as np

# Marker half-width in meters; scales with ``scale`` only.
MARKER_HALF_WIDTH = 0.004


def canvas_size(scale, clip_pos):
    """Side length of the square canvas in pixels or vector units."""
    return int(round(2.0 * scale * clip_pos))


def project_samples(samples, scale, clip_pos):
    """
    Project samples to canvas coordinates.

    Args:
        samples: sequence of (angle, range) pairs
        scale: pixels per meter
        clip_pos: half canvas extent in meters

    Returns:
        float64 array of shape (N, 2)
    """
    if len(samples) == 0:
        return np.zeros((0, 2), dtype=np.float64)

    polar = np.asarray(samples, dtype=np.float64)
    theta = polar[:, 0]
    r = polar[:, 1]
    x = scale * (r * np.cos(theta) + clip_pos)
    y = scale * (r * np.sin(theta) + clip_pos)
    return np.column_stack([x, y])


def nonzero_mask(samples):
    """Boolean mask of samples that carry a return (range != 0)."""
    if len(samples) == 0:
        return np.zeros(0, dtype=bool)
    return np.asarray(samples, dtype=np.float64)[:, 1] != 0.0


def marker_square(center, half_width):
    """Closed square path (4 corners) centered on ``center``."""
    cx, cy = center
    return [
        (cx - half_width, cy - half_width),
        (cx + half_width, cy - half_width),
        (cx + half_width, cy + half_width),
        (cx - half_width, cy + half_width),
    ]
