# barberbook/core/exceptions.py
"""
Domain-specific exceptions for the Barberbook booking core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the structured error body."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class MalformedTimeException(ValidationException):
    """Raised when a time-of-day value is not a valid 24-hour HH:MM string."""

    def __init__(self, value: object, reason: Optional[str] = None):
        super().__init__(
            message=reason or f"Invalid time of day: {value!r} (expected HH:MM)",
            code="MALFORMED_TIME",
            details={"value": str(value)},
        )


class NoValidServicesException(ValidationException):
    """Raised when none of the requested services exist or are active."""

    def __init__(self, requested_ids: Optional[list[str]] = None):
        super().__init__(
            message="None of the requested services are available",
            code="NO_VALID_SERVICES",
            details={"requested_service_ids": list(requested_ids or [])},
        )


class SlotAlreadyBookedException(ConflictException):
    """Raised when a requested interval overlaps a live booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is already booked",
            code="SLOT_ALREADY_BOOKED",
            details=details or {},
        )


class InvalidProviderException(NotFoundException):
    """Raised when a provider is unknown or not accepting bookings."""

    def __init__(self, provider_id: str, message: Optional[str] = None):
        super().__init__(
            message=message or "Provider not found",
            code="INVALID_PROVIDER",
            details={"provider_id": provider_id},
        )


class InvalidCustomerException(ValidationException):
    """Raised when the booking customer is unknown or inactive."""

    def __init__(self, customer_id: str):
        super().__init__(
            message="Customer account is not valid for booking",
            code="INVALID_CUSTOMER",
            details={"customer_id": customer_id},
        )


class InvalidBookingTransitionException(BusinessRuleException):
    """Raised when a booking status change is not allowed from its current state."""

    def __init__(self, booking_id: str, current: str, target: str):
        super().__init__(
            message=f"Booking cannot move from {current} to {target}",
            code="INVALID_BOOKING_TRANSITION",
            details={"booking_id": booking_id, "current_status": current, "target_status": target},
        )


class NotAuthorizedException(ForbiddenException):
    """Raised when an actor does not own the resource it is acting on."""

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "You are not allowed to perform this action",
            code="NOT_AUTHORIZED",
            details=details or {},
        )


class SubscriptionInactiveException(ForbiddenException):
    """Raised when a provider without a live subscription attempts a write."""

    def __init__(self, provider_id: str, subscription_status: str):
        super().__init__(
            message="Provider subscription is not active",
            code="SubscriptionInactive",
            details={"provider_id": provider_id, "subscription_status": subscription_status},
        )


class ExternalSignatureException(ValidationException):
    """Raised when an inbound gateway payload fails signature verification."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message=message or "Invalid webhook signature",
            code="INVALID_SIGNATURE",
        )


class PaymentGatewayException(ServiceException):
    """Raised when the payment gateway cannot be reached or rejects a call."""


class StorageException(ServiceException):
    """Raised when a database unit of work fails and is rolled back."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message=message or "Database operation failed",
            code="STORAGE_ERROR",
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
