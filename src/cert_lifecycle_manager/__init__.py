"""Certificate lifecycle orchestration against a remote certificate authority service."""

from cert_lifecycle_manager.__version__ import __version__

__all__ = ["__version__"]
