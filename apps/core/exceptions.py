"""
Domain exceptions shared across apps.
"""


class StorageFailure(Exception):
    """The sensor document store failed a read or a write."""

    def __init__(self, operation, original=None):
        self.operation = operation
        self.original = original
        message = f"{operation} failed"
        if original is not None:
            message = f"{message}: {original}"
        super().__init__(message)


class BufferNotReady(Exception):
    """A ring buffer was accessed per slot while not in the ready state."""

    def __init__(self, kind, state):
        self.kind = kind
        self.state = state
        super().__init__(f"{kind} buffer is {state}, not ready")
