"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("cpq.http")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class DomainError(AppException):
    """
    Raised when a caller hands the pricing core inputs that break its contract.

    Distinct from a rule that simply does not match: malformed *rules* never
    raise, malformed *contexts* always do.
    """

    def __init__(self, message: str, error_code: str = "ERR_DOMAIN_000", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class InvalidQuantityError(DomainError):
    """Raised when a quantity is zero or negative."""

    def __init__(self, quantity: Any):
        super().__init__(
            message=f"Quantity must be positive, got {quantity}",
            error_code="ERR_DOMAIN_001",
            details={"quantity": str(quantity)}
        )


class InvalidPriceError(DomainError):
    """Raised when a base or unit price is negative."""

    def __init__(self, price: Any, field: str = "base_price"):
        super().__init__(
            message=f"{field} must not be negative, got {price}",
            error_code="ERR_DOMAIN_002",
            details={"field": field, "value": str(price)}
        )


class InvalidTaxRateError(DomainError):
    """Raised when a tax rate is negative."""

    def __init__(self, tax_rate: Any):
        super().__init__(
            message=f"Tax rate must not be negative, got {tax_rate}",
            error_code="ERR_DOMAIN_003",
            details={"tax_rate": str(tax_rate)}
        )


class QuoteStateError(AppException):
    """Raised when a quote status transition is not allowed."""

    def __init__(self, current_status: str, action: str, allowed: tuple = ()):
        super().__init__(
            message=f"Cannot {action} a quote in status '{current_status}'",
            error_code="ERR_QUOTE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"status": current_status, "action": action, "allowed_from": list(allowed)}
        )


class QuoteExpiredError(AppException):
    """Raised when a customer responds to a quote past its validity date."""

    def __init__(self, valid_until: Any):
        super().__init__(
            message=f"Quote expired on {valid_until}",
            error_code="ERR_QUOTE_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"valid_until": str(valid_until)}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
