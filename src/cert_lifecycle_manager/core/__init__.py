"""Caller-facing certificate lifecycle types."""
