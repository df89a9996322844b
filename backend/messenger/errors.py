class MessengerError(Exception):
    """Base class for errors raised by the messenger server."""


class StorageError(MessengerError):
    """The backing store could not complete a read, write or delete."""

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"storage {operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
