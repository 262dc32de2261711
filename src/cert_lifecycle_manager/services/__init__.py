"""Certificate lifecycle services."""
