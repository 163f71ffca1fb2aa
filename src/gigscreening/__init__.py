"""Worker lifecycle and screening evaluation engine."""

__version__ = "0.1.0"
