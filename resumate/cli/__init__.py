"""Command layer for the resumate CLI."""
