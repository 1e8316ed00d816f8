"""
Concourse driver exceptions.

Custom exception hierarchy for the driver.
"""


class ConcourseError(Exception):
    """Base exception for all Concourse driver errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConnectionError(ConcourseError):
    """Raised when the Concourse Server cannot be reached."""

    pass


class AuthenticationError(ConcourseError):
    """Raised when the server rejects the login credentials."""

    pass


class InvalidArgumentError(ConcourseError):
    """Raised when a call's arguments match no remote operation.

    Always raised locally, before anything is sent to the server.
    """

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class RemoteError(ConcourseError):
    """Raised when the server answers a call with an error."""

    def __init__(self, message: str, method: str | None = None, code: int | None = None):
        self.method = method
        super().__init__(message, code)


class TransactionError(ConcourseError):
    """Raised when a transaction cannot be staged or committed."""

    pass


class ConfigurationError(ConcourseError):
    """Raised when a preferences file cannot be read or validated."""

    pass


class ServerError(RemoteError):
    """Raised when the server answers with an HTTP error status or a reply
    that is not an RPC response."""

    pass
