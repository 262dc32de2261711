"""Version information for cert_lifecycle_manager."""

__version__ = "0.3.0"
