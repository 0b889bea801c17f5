"""Trust engine services."""
