"""Phone-to-watch weather synchronization over a cross-device link."""

__version__ = "0.1.0"
