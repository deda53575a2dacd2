class TrackerError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    status_code = 400


class AuthError(TrackerError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFoundError(TrackerError):
    status_code = 404

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)
