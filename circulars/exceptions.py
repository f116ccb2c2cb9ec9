"""
Exceptions raised by the circular source and snapshot stores.
"""


class CircularsError(Exception):
    """Base class for circular poller errors."""


class TransientIOError(CircularsError):
    """The remote source could not be reached or answered with a server error.

    Recoverable: the cycle ends with a retry outcome and nothing is mutated.
    """

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class SnapshotStoreError(CircularsError):
    """A snapshot read or write failed in the backing store."""

    def __init__(self, message: str, operation: str = None):
        super().__init__(message)
        self.operation = operation
