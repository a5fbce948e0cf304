"""Interactive command loop."""
