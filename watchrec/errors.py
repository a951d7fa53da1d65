class WatchrecError(Exception):
    """Base class for errors raised by the recommendation service."""


class CommandError(WatchrecError):
    """A client command could not be parsed.

    ``message`` is the exact text sent back on the connection.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreBusyError(WatchrecError):
    """The watch store lock could not be acquired within the configured timeout."""
