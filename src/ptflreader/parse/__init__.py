"""Scan-list format parsing."""
