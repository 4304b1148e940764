# lpd_gateway/core/exceptions.py


class ConnectionClosedError(Exception):
    """Raised when the client closes the connection or a read/write fails."""

    pass


class ProtocolError(Exception):
    """Raised for malformed command or sub-command lines."""

    def __init__(self, message: str, line: bytes = b""):
        self.line = line
        super().__init__(message)


class TransferAbortedError(ProtocolError):
    """Raised when the client sends the abort sub-command or a bad trailing status."""

    pass


class DirectiveError(Exception):
    """Raised when a single control file print directive cannot be honoured."""

    def __init__(self, code: str, value: str, reason: str):
        self.code = code
        self.value = value
        self.reason = reason
        super().__init__(f"Directive '{code}{value}' failed: {reason}")


class PrintQueueError(Exception):
    """Raised when the print-queue service rejects or fails a request."""

    def __init__(self, operation: str, message: str, status_code: int = -1):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")
