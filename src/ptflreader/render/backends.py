"""
Render backend interface.

A backend turns a RenderLayerSet into an in-memory image and writes it to
disk. Layer geometry always comes from ``build_layer_set``; backends only
choose the signal stroke width and how opacity is applied.
"""

from ptflreader.errors import RenderError
from ptflreader.render.layers import build_layer_set


class RenderBackend:
    """Capability interface shared by the raster and vector backends."""

    name = None
    extension = None
    signal_width_factor = None

    def layers_for(self, entry, hue, lightness, scale, clip_pos):
        """Build the layer set of one entry with this backend's widths."""
        return build_layer_set(
            entry.samples, scale, clip_pos, hue, lightness,
            signal_width=self.signal_width_factor,
        )

    def render(self, layer_set, scale, clip_pos):
        raise NotImplementedError

    def save(self, image, path):
        raise NotImplementedError

    def output_name(self, stem):
        return f"{stem}.{self.extension}"


def get_backend(name):
    """Look up a backend by name ("png" or "svg")."""
    from ptflreader.render.raster import RasterBackend
    from ptflreader.render.vector import VectorBackend

    backends = {
        RasterBackend.name: RasterBackend,
        VectorBackend.name: VectorBackend,
    }
    try:
        return backends[name]()
    except KeyError:
        raise RenderError(f"Unknown backend: {name!r} (expected one of {sorted(backends)})") from None
