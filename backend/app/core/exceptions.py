"""
Custom exceptions for the application.
Project: JobQuote (Quote & Invoice Backend)

Domain-specific exceptions for centralised error handling.

NOTE: BusinessValidationError is deliberately distinct from pydantic.ValidationError.
- pydantic.ValidationError: malformed/ill-typed input (handled by FastAPI → 422)
- BusinessValidationError: business rule violations (handled by our handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias of BusinessValidationError
    "InvalidItemError",
    "InvalidRateError",
    "ConflictError",
    "IllegalTransitionError",
    "QuoteLockedError",
    "EmptyQuoteError",
    "QuoteNotInvoiceableError",
    "InvoiceAlreadyExistsError",
    "QuotaExceededError",
    "EmailDeliveryError",
    "ServiceUnavailableError",
    "AuthorizationError",
]


class AppException(Exception):
    """
    Base exception for the application.

    Every custom exception derives from this class.

    Attributes:
        status_code: HTTP status code returned to the client
        error_code: Stable identifier of the error for the mobile client
        detail: Human readable message
        extra: Optional additional data for the client
    """

    # Default values - overridden in subclasses
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialise the exception.

        Args:
            detail: Detailed error message
            error_code: Unique identifier (default: the class one)
            extra: Additional data for the client (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Raised when a resource does not exist.

    Also raised when the resource exists but belongs to another user,
    so that ownership is never leaked.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Resource not found",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class DuplicateError(AppException):
    """
    Raised when creating a resource that already exists.

    Used for unique constraint violations.
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"

    def __init__(
        self,
        detail: str = "Resource already exists",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Raised for business rule violations on user input.

    Inherits from ValueError so it can be raised inside Pydantic validators.

    Always recoverable locally and never retried automatically. Only the
    first failing field is reported.

    Examples:
        - "Job title is required"
        - "Please enter a valid email address"
        - "Hourly rate must be between $30 and $300"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validation failed",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Call AppException.__init__ directly to bypass ValueError
        AppException.__init__(self, detail, error_code, extra)


# Compatibility alias
ValidationError = BusinessValidationError


class InvalidItemError(BusinessValidationError):
    """Raised when a quote line item violates one of its constraints."""

    error_code: str = "INVALID_ITEM"

    def __init__(
        self,
        detail: str = "Invalid quote item",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class InvalidRateError(BusinessValidationError):
    """Raised when a tax rate is negative."""

    error_code: str = "INVALID_RATE"

    def __init__(
        self,
        detail: str = "Tax rate must not be negative",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConflictError(AppException):
    """
    Raised for state conflicts.

    Used when an operation cannot run because of the current
    state of the resource.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "State conflict",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class IllegalTransitionError(ConflictError):
    """Raised when a quote status change is not one of the allowed edges."""

    error_code: str = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        detail: str = "Status transition not allowed",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class QuoteLockedError(ConflictError):
    """Raised when editing the financial terms of a quote that left Draft."""

    error_code: str = "QUOTE_LOCKED"

    def __init__(
        self,
        detail: str = "Only draft quotes can be edited",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class EmptyQuoteError(ConflictError):
    """Raised when sending a quote that has no line items."""

    error_code: str = "EMPTY_QUOTE"

    def __init__(
        self,
        detail: str = "At least one quote item is required before sending",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class QuoteNotInvoiceableError(ConflictError):
    """Raised when invoicing a quote that is neither Sent nor Approved."""

    error_code: str = "QUOTE_NOT_INVOICEABLE"

    def __init__(
        self,
        detail: str = "Only sent or approved quotes can be invoiced",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class InvoiceAlreadyExistsError(DuplicateError):
    """
    Raised when a quote already has its invoice.

    Raised both by the pre-check and when the unique constraint on
    invoices.quote_id rejects a concurrent insert; the message is the
    same in both cases.
    """

    error_code: str = "INVOICE_ALREADY_EXISTS"

    def __init__(
        self,
        detail: str = "An invoice already exists for this quote",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class QuotaExceededError(AppException):
    """
    Raised when a free-tier user reached the quote or invoice limit.

    Expected business condition: surfaced with an upsell message,
    never logged as an error.
    """

    status_code: int = 402
    error_code: str = "QUOTA_EXCEEDED"

    def __init__(
        self,
        detail: str = "You've reached your limit. Upgrade to Premium for unlimited access.",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class EmailDeliveryError(AppException):
    """Raised when the email provider rejects or fails a send."""

    status_code: int = 502
    error_code: str = "EMAIL_DELIVERY_FAILED"

    def __init__(
        self,
        detail: str = "Failed to send email",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ServiceUnavailableError(AppException):
    """Raised when required external configuration is missing."""

    status_code: int = 503
    error_code: str = "SERVICE_UNAVAILABLE"

    def __init__(
        self,
        detail: str = "Service unavailable",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class AuthorizationError(AppException):
    """
    Raised for unauthorised access.

    Used when a user tries to act on a resource or operation
    they have no permission for.
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"

    def __init__(
        self,
        detail: str = "Access denied",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
