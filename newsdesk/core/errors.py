class NewsdeskError(Exception):
    """Base class for errors raised by the ingest pipeline."""

    code = "NEWSDESK_ERROR"
    status = 500


class UpstreamFetchError(NewsdeskError):
    """Transport failure or non-success response from the content API."""

    code = "UPSTREAM_FETCH_ERROR"
    status = 502


class TransformError(NewsdeskError):
    """Generative call or response parsing failed.

    Only raised inside the transformer, which always recovers with its fallback.
    """

    code = "TRANSFORM_ERROR"


class DuplicateError(NewsdeskError):
    code = "DUPLICATE"
    status = 409


class NotFoundError(NewsdeskError):
    code = "NOT_FOUND"
    status = 404


class ValidationError(NewsdeskError):
    code = "VALIDATION_ERROR"
    status = 400


class SchedulerTickError(NewsdeskError):
    """Wraps a failure of one author inside a scheduler tick."""

    code = "SCHEDULER_TICK_ERROR"

    def __init__(self, author: str, cause: BaseException):
        super().__init__(f"Scheduled run failed for @{author}: {cause}")
        self.author = author
        self.cause = cause
