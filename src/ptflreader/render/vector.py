"""
Vector backend: svgwrite documents with one group per layer.

The document is ``size x size`` user units with an opaque black background
rectangle. Layer opacity is applied as group opacity.
"""

import svgwrite

from ptflreader.io.save_artifacts import save_svg
from ptflreader.render.backends import RenderBackend
from ptflreader.render.color import hsl_to_rgb, rgb_hex
from ptflreader.render.layers import SIGNAL_WIDTH_VECTOR
from ptflreader.render.projection import canvas_size
from ptflreader.tracer import get_tracer, trace


def path_data(points):
    """Closed SVG path data for a list of points."""
    if not points:
        return ""
    head, *rest = points
    parts = [f"M {head[0]:.3f} {head[1]:.3f}"]
    parts.extend(f"L {x:.3f} {y:.3f}" for x, y in rest)
    parts.append("Z")
    return " ".join(parts)


class VectorBackend(RenderBackend):
    """SVG output through svgwrite."""

    name = "svg"
    extension = "svg"
    signal_width_factor = SIGNAL_WIDTH_VECTOR

    @trace(label="render_vector")
    def render(self, layer_set, scale, clip_pos):
        """
        Build an SVG drawing for the layer set.

        Returns:
            svgwrite.Drawing object
        """
        tracer = get_tracer()

        size = canvas_size(scale, clip_pos)
        dwg = svgwrite.Drawing(size=(size, size))
        dwg.viewbox(0, 0, size, size)
        dwg.add(dwg.rect(insert=(0, 0), size=(size, size), fill="black", id="background"))

        kinds = (("outline", layer_set.outline), ("signal", layer_set.signal), ("markers", layer_set.markers))
        for kind, layers in kinds:
            for index, layer in enumerate(layers):
                style = layer.style
                group = dwg.g(
                    id=f"{kind}-{index}",
                    class_=kind,
                    fill="none",
                    stroke=rgb_hex(hsl_to_rgb(style.hue, style.saturation, style.lightness)),
                    stroke_width=style.width,
                    opacity=style.opacity,
                )
                group.attribs["stroke-linejoin"] = "round"
                for points in layer.paths:
                    group.add(dwg.path(d=path_data(points)))
                dwg.add(group)

        tracer.event(f"SVG built with {len(layer_set.all_layers())} layers")
        return dwg

    def save(self, image, path):
        save_svg(image, path)
