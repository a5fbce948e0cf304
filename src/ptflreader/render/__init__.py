"""Polar-to-Cartesian rendering and image backends."""
