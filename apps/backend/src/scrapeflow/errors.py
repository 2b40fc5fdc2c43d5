"""Error taxonomy for graph and schedule operations."""

from __future__ import annotations


class ScrapeflowError(Exception):
    """Base class for errors raised by the workflow and scheduler core."""

    error_type: str = "scrapeflow_error"

    def __init__(self, message: str, error_type: str | None = None):
        if error_type is not None:
            self.error_type = error_type
        super().__init__(message)


class InvalidReferenceError(ScrapeflowError):
    """A connection points at a node that is not part of the workflow."""

    error_type = "invalid_reference"


class InvalidHandleError(ScrapeflowError):
    """A source or target handle is not legal for the node's type."""

    error_type = "invalid_handle"


class NotFoundError(ScrapeflowError):
    """A patch or remove targeted an id that does not exist."""

    error_type = "not_found"


class ValidationError(ScrapeflowError):
    """Payload or schedule fields are inconsistent.

    ``errors`` maps field names to human readable messages so callers can
    surface them next to the offending input.
    """

    error_type = "validation_error"

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        self.errors = dict(errors or {})
        super().__init__(message)
