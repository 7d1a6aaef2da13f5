"""Exceptions raised by the correction-service client."""

from __future__ import annotations


class CorrectionError(RuntimeError):
    """Base class for failures talking to the correction service."""


class ServiceError(CorrectionError):
    """Transport failure, timeout, or non-success HTTP status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FormatError(CorrectionError):
    """Response payload could not be decoded into issues."""


__all__ = ["CorrectionError", "FormatError", "ServiceError"]
