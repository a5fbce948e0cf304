"""HSL to RGB conversion through OpenCV's HLS color space."""

import cv2
import numpy as np


def hsl_to_rgb(hue, saturation, lightness):
    """
    Convert an HSL triple to 8-bit RGB.

    Args:
        hue: degrees, 0-360
        saturation: percent, 0-100
        lightness: percent, 0-100

    Returns:
        (r, g, b) ints in 0-255
    """
    # float32 HLS in OpenCV takes H in degrees, L and S in [0, 1]
    hls = np.array([[[hue % 360.0, lightness / 100.0, saturation / 100.0]]], dtype=np.float32)
    rgb = cv2.cvtColor(hls, cv2.COLOR_HLS2RGB)[0, 0]
    return tuple(int(round(float(np.clip(c, 0.0, 1.0)) * 255)) for c in rgb)


def rgb_hex(rgb):
    """Format an RGB triple as ``#rrggbb``."""
    return "#{:02x}{:02x}{:02x}".format(*rgb)
