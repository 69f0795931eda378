"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""


class SnapshotStoreError(Exception):
    """Raised when weather store queries or normalization fail."""


class ProtocolError(Exception):
    """Raised when a replicated weather record cannot be decoded."""


class LinkStateError(Exception):
    """Raised when a link session is asked for an impossible transition."""

    def __init__(self, message: str, *, current: str, requested: str) -> None:
        super().__init__(message)
        self.current = current
        self.requested = requested
