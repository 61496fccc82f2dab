"""Error taxonomy for adaptive planning and daily logging.

Every error carries the HTTP status and machine-readable code the API
renders it with, so services raise domain errors and routers stay thin.
"""

from fastapi import status


class PlanningError(Exception):
    """Base class for all adaptive-planning and logging failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "PLANNING_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(PlanningError):
    """Malformed input handed to the adherence analyzer."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"


class NotFoundError(PlanningError):
    """A referenced user profile or record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: object):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource


class PreconditionError(PlanningError):
    """An adjustment was requested while its prerequisites are missing."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "PRECONDITION_FAILED"

    def __init__(self, detail: str, missing: str | None = None):
        super().__init__(detail)
        self.missing = missing


class ProviderError(PlanningError):
    """The plan generation provider failed or returned an unusable plan."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "PROVIDER_ERROR"

    def __init__(self, detail: str, *, retryable: bool = True):
        super().__init__(detail)
        self.retryable = retryable


class PlanGenerationTimeoutError(ProviderError):
    """Plan generation did not finish within the configured timeout."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "PROVIDER_TIMEOUT"

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"Plan generation timed out after {timeout_seconds:g} seconds",
            retryable=True,
        )
        self.timeout_seconds = timeout_seconds


class PersistenceError(PlanningError):
    """Log or plan store I/O failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "PERSISTENCE_ERROR"


class ConcurrentUpdateError(PersistenceError):
    """A daily log changed underneath a read-modify-write cycle."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONCURRENT_UPDATE"
