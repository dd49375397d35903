from typing import Any, Dict, Optional


class AppException(Exception):
    """Base for errors that leave the API as {"success": false, "errors": [...]}."""

    status_code = 400
    error_code = "BUSINESS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class NotFoundError(AppException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message, details={"entity": entity, "id": entity_id})


class InvalidRequestError(AppException):
    """Malformed or inconsistent input."""
    error_code = "VALIDATION_ERROR"


class PreconditionFailedError(InvalidRequestError):
    """A lifecycle action whose prerequisite step has not happened yet."""
    error_code = "PRECONDITION_FAILED"


class InvalidTransitionError(InvalidRequestError):
    """A lifecycle action not allowed from the evaluation's current status."""
    error_code = "INVALID_TRANSITION"


class ConflictError(AppException):
    status_code = 409
    error_code = "CONFLICT"


class AuthenticationError(AppException):
    status_code = 401
    error_code = "AUTH_FAILED"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class AccessDeniedError(AppException):
    """Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    status_code = 403
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
