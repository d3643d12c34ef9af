"""HTTP surface for task observers."""
