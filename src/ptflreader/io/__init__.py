"""Artifact writers."""
