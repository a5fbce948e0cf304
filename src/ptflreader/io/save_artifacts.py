"""
Image writers for PTFL Reader.

PNG through OpenCV, SVG through svgwrite's serializer.
"""

import os

import cv2

from ptflreader.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_image(img, path):
    """
    Save an RGB image to disk.

    Raises OSError if OpenCV cannot encode or write the file.
    """
    tracer = get_tracer()

    # Convert RGB to BGR if needed (3 channels)
    if len(img.shape) == 3 and img.shape[2] == 3:
        img_bgr = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    else:
        img_bgr = img

    ensure_dir(os.path.dirname(path))
    try:
        written = cv2.imwrite(path, img_bgr)
    except cv2.error as e:
        # unknown extension, or an image the encoder rejects
        raise OSError(f"Failed to write image: {path}: {str(e).strip()}") from e
    if not written:
        raise OSError(f"Failed to write image: {path}")
    tracer.event(f"Saved image: {path}")


def save_svg(svg_content, path):
    """
    Save SVG content to file.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(svg_content, "tostring"):
        content = svg_content.tostring()
    else:
        content = str(svg_content)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    tracer.event(f"Saved SVG: {path}")
