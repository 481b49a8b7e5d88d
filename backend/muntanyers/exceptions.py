"""
muntanyers Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py turn them into structured
       JSON error responses with the matching HTTP status code.
Who:   Raised by services, dependencies and middleware.

Exception Hierarchy:
    MuntanyersError (base)
    ├── ValidationError           → 400 Bad Request
    ├── AuthenticationError       → 401 Unauthorized
    ├── ForbiddenError            → 403 Forbidden
    ├── NotFoundError             → 404 Not Found
    ├── ConflictError             → 409 Conflict
    │   └── InvalidTransitionError
    ├── FileStorageError          → 500 Internal Server Error
    └── DatabaseError             → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MuntanyersError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (returned only by 4xx handlers)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MuntanyersError):
    """
    Raised when client input fails a business rule.

    Examples: empty username, empty comment, self-follow, wrong current
    password, unsupported avatar type.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(MuntanyersError):
    """No session, or credentials that do not match an account."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(MuntanyersError):
    """
    The caller is authenticated but is not allowed to act on the resource.

    Raised when deleting someone else's post or comment, or when listing the
    posts of a private account the caller does not follow.
    """

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MuntanyersError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so routes never deal with it.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(MuntanyersError):
    """A unique key is already taken (username, email) or the state forbids the action."""

    def __init__(
        self,
        message: str = "The request conflicts with the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTransitionError(ConflictError):
    """
    A follow edge cannot move from its current status with the given action.

    Only pending requests can be accepted or rejected.
    """

    def __init__(
        self,
        current: Optional[str],
        action: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"current_status": current, "action": action})
        super().__init__(
            message=f"Cannot {action} a follow request that is {current or 'absent'}",
            context=ctx,
        )
        self.current = current
        self.action = action


class FileStorageError(MuntanyersError):
    """Disk full, permission denied or any other I/O failure in avatar storage."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MuntanyersError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

