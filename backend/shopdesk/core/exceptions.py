"""
Domain errors for the sale and bill-ingestion workflows.

Every error carries a human-readable message that is safe to show to the
dashboard, plus the HTTP status it maps to. Unexpected exceptions are never
exposed: they are logged internally and answered with a generic 500
(see server_error_response).
"""
from fastapi import status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class ShopDeskError(Exception):
    """Base class for errors that surface to the caller with a message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopDeskError):
    """Malformed input. Recovered locally and answered with 400."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(ShopDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(ShopDeskError):
    """
    Requested quantity exceeds what is on hand. Raised before any mutation
    is committed, so stock is left untouched.
    """

    def __init__(self, item_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {item_name}. Available: {available}, Requested: {requested}"
        )
        self.item_name = item_name
        self.available = available
        self.requested = requested


class StorageError(ShopDeskError):
    """Object storage could not persist a file."""


class ExtractionError(ShopDeskError):
    """The extraction collaborator did not produce a usable bill payload."""


class ItemUpsertError(ShopDeskError):
    """A single ingested bill line could not be applied to inventory."""

    def __init__(self, item_name: str, reason: str):
        super().__init__(f"Could not process item '{item_name}': {reason}")
        self.item_name = item_name
        self.reason = reason


def error_response(status_code: int, message: str, errors: list | None = None) -> JSONResponse:
    """Failure envelope shared by every route."""
    body = {"success": False, "error": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def server_error_response(original_error: Exception = None) -> JSONResponse:
    """
    Generic 500 - logs actual error internally, hides it from the caller.

    Never expose stack traces, SQL errors, or internal paths.
    """
    if original_error:
        logger.error(
            f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
            exc_info=original_error,
        )
    else:
        logger.error("Internal server error occurred", exc_info=True)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal error occurred. Please try again later.",
    )
