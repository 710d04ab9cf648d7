"""
Custom Exceptions for ERPlay
============================

Services raise these instead of building HTTP responses. The handlers in
``erplay.main`` turn any ``ERPlayError`` into ``{"error": message}`` with the
error's ``status_code``.

Usage:
    from erplay.core.exceptions import DiagramNotFoundError

    if not diagram:
        raise DiagramNotFoundError()
"""

from typing import Optional, Any, Dict


class ERPlayError(Exception):
    """Base exception for all ERPlay errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(ERPlayError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password"""

    def __init__(self):
        super().__init__("Invalid credentials")
        self.code = "INVALID_CREDENTIALS"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid, expired or revoked"""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


class AuthorizationError(ERPlayError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(ERPlayError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__("User", message)


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Student")


class DiagramNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Diagram")


class QuestionNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Question")


class SessionNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Session")


class ResultNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Result")


class ClaimNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Claim")


class NoTestsAvailableError(ResourceNotFoundError):
    """No diagram has approved questions to build a session from"""

    def __init__(self, message: str = "No tests available"):
        super().__init__("Test", message)
        self.code = "NO_TESTS_AVAILABLE"


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(ERPlayError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}",
            field="image"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(ValidationError):
    """Uploaded file exceeds MAX_UPLOAD_SIZE"""

    def __init__(self, max_size: int):
        super().__init__(
            f"File too large. Maximum size is {max_size // 1024 // 1024}MB",
            field="image"
        )
        self.code = "FILE_TOO_LARGE"


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(ERPlayError):
    """Resource state conflicts with the request"""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class EmailInUseError(ConflictError):
    def __init__(self):
        super().__init__("Email already in use")
        self.code = "EMAIL_IN_USE"


def error_response(error: ERPlayError) -> Dict[str, Any]:
    """Body returned to clients for any ERPlayError"""
    return {"error": error.message}
