"""Live previewer process bridge."""
