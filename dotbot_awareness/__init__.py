"""Solution awareness and artifact integrity engine for managed repositories."""

from .operations import OPERATIONS, build_envelope, dispatch

__version__ = "0.1.0"

__all__ = ["OPERATIONS", "__version__", "build_envelope", "dispatch"]
