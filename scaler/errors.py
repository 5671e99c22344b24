"""
Errors raised by the scaling pipeline.

Every stage raises a subclass of ScalerError. The handler maps each one to a
response envelope using its status_code, so nothing escapes unserialized.
"""

from typing import Optional


class ScalerError(Exception):
    """
    Base class for pipeline failures.

    Attributes:
        message: Text that is safe to show to the caller
        detail: Underlying store or codec diagnostic, only surfaced in
            diagnostic mode
    """

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class BadRequest(ScalerError):
    """Malformed or out-of-range request key."""

    status_code = 422


class FetchError(ScalerError):
    """The original object could not be retrieved."""


class ObjectNotFound(FetchError):
    """The store reported that the original object does not exist."""

    status_code = 404


class ObjectTooLarge(FetchError):
    """The original object exceeds the configured input cap."""

    def __init__(self, limit: int, actual: Optional[int] = None):
        detail = f"limit is {limit} bytes"
        if actual is not None:
            detail = f"object is {actual} bytes, {detail}"
        super().__init__("object too large", detail)
        self.limit = limit
        self.actual = actual


class ScaleError(ScalerError):
    """Decoding, resizing or encoding failed."""


class PublishError(ScalerError):
    """Writing the derivative back to the store failed."""


class ConfigError(ScalerError):
    """Required configuration is missing or invalid."""
