from typing import Any, Optional


class AppException(Exception):
    """Base application exception."""

    pass


class ApiError(AppException):
    """The orchestration API rejected a request (create, read, delete, subscribe)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class StateNotFoundError(AppException):
    """No terminal pod or container status could be found."""

    pass


class AmbiguousResourceError(AppException):
    """More than one pod matched where exactly one was expected."""

    pass


class OutcomeError(AppException):
    """A watch resolved to something other than success."""

    def __init__(self, message: str, outcome: Any):
        super().__init__(message)
        self.outcome = outcome


class JobFailedError(OutcomeError):
    """The job reported a failed pod."""

    pass


class TimedOutError(OutcomeError):
    """No resolution arrived before the deadline."""

    pass


class WatchClosedError(OutcomeError):
    """The subscription closed before a resolution was observed."""

    pass


class DeploymentAbortedError(OutcomeError):
    """The deployment was deleted while waiting for it."""

    pass
