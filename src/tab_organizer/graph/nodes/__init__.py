"""Organize workflow nodes, one per persisted phase."""
