"""PTFL Reader: load polar scan lists, render them and preview them live."""

__version__ = "0.3.0"
