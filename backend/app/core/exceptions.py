"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the case service.

Benefits:
- Consistent error responses
- Proper HTTP status codes
- Structured error messages

Usage:
    raise MissingFieldError("assignedToId")
    raise CaseNotFoundError(case_id)
"""

from typing import Any, Dict, Optional
from fastapi import status


class CaseServiceException(Exception):
    """
    Base exception class for the case service.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ==========================
# Validation Exceptions
# ==========================

class ValidationError(CaseServiceException):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class MissingFieldError(ValidationError):
    """Raised when a required field is absent or blank."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"{field} is required",
            details={"field": field},
        )


class InvalidStatusError(ValidationError):
    """Raised when a status string is not part of the lifecycle."""

    def __init__(self, value: Any):
        from app.core.enums import IncidentStatus

        super().__init__(
            message=f"Unrecognized case status: {value}",
            details={
                "status": str(value),
                "allowed": [s.value for s in IncidentStatus],
            },
        )


class InvalidTransitionError(ValidationError):
    """Raised when strict transitions are enabled and the move is not allowed."""

    def __init__(self, current: str, new: str):
        super().__init__(
            message=f"Cannot move from {current} to {new}",
            details={"current_status": current, "new_status": new},
        )


class BuildingRequiredError(ValidationError):
    """Raised when no building can be resolved for a new case."""

    def __init__(self):
        super().__init__(
            message="Building ID is required. User has no associated building in their department.",
            details={"field": "buildingId"},
        )


# ==========================
# Identity Exceptions
# ==========================

class AuthenticationError(CaseServiceException):
    """Raised when the gateway did not identify the caller."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(CaseServiceException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier:
            details["identifier"] = str(identifier)
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class CaseNotFoundError(NotFoundError):
    """Raised when a case id or case number does not resolve."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Case", identifier=identifier)


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="User", identifier=identifier)


class SLARuleNotFoundError(NotFoundError):
    """Raised when an SLA rule is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="SLA rule", identifier=identifier)


# ==========================
# Conflict Exceptions
# ==========================

class ConflictError(CaseServiceException):
    """Raised when a write conflicts with existing state."""

    def __init__(
        self,
        message: str = "Conflict",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class CaseExistsError(ConflictError):
    """Raised when a new case reuses an existing id or case number."""

    def __init__(self, field: str, value: str):
        super().__init__(
            message=f"A case with this {field} already exists",
            details={"field": field, "value": str(value)},
        )


class SLARuleExistsError(ConflictError):
    """Raised when a rule for the same (category, severity) pair exists."""

    def __init__(self, category: str, severity: str):
        super().__init__(
            message="An SLA rule for this category and severity already exists",
            details={"category": category, "severity": severity},
        )


class SLARuleInUseError(ConflictError):
    """Raised when deleting a rule that tracking rows still reference."""

    def __init__(self, rule_id: str):
        super().__init__(
            message="SLA rule is referenced by tracked cases",
            details={"rule_id": str(rule_id)},
        )


# ==========================
# Notification Exceptions
# ==========================

class NotificationDeliveryError(CaseServiceException):
    """
    Raised by notification dispatchers when delivery fails.

    Never surfaced to API callers: the coordinator logs it and moves on.
    """

    def __init__(self, user_id: str, reason: str):
        super().__init__(
            message=f"Notification delivery to {user_id} failed: {reason}",
            details={"user_id": str(user_id), "reason": reason},
        )

