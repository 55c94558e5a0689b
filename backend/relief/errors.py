# Overview: Domain error taxonomy shared by services, routes and CLI.

from __future__ import annotations


class ReliefError(Exception):
    """Base class for fulfillment engine errors."""


class ValidationError(ReliefError, ValueError):
    """400-level input problem (e.g. non-positive requested quantity)."""


class Unauthorized(ReliefError):
    """Actor lacks the tracker/organization identity the operation needs."""


class NotFoundError(ReliefError):
    """
    Pin or line item does not exist.

    Expected when a concurrent completion already deleted the pin; callers
    treat it as "already resolved".
    """


class StoreError(ReliefError):
    """Underlying persistence failure. Keeps the original exception for diagnostics."""

    def __init__(self, message: str, original: Exception | None = None):
        super().__init__(message)
        self.original = original


class PartialFailure(ReliefError):
    """
    Accept writes were committed but the completion delete did not finish.

    Returned inside AcceptResult rather than raised; retry with reconcile().
    """

    def __init__(self, message: str, pin_id: int, original: Exception | None = None):
        super().__init__(message)
        self.pin_id = pin_id
        self.original = original


HTTP_STATUS = {
    ValidationError: 400,
    Unauthorized: 403,
    NotFoundError: 404,
    StoreError: 500,
    PartialFailure: 500,
}


def error_response(exc: ReliefError) -> tuple[dict, int]:
    """JSON body and status code for a domain error raised inside a route."""
    for cls in type(exc).__mro__:
        if cls in HTTP_STATUS:
            return {"error": str(exc)}, HTTP_STATUS[cls]
    return {"error": str(exc)}, 500
