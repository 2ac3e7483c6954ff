"""
dsa_mentor/errors.py
Centralized error handling

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / malformed request / duplicate account / bad setup code
- 401: Invalid credentials, invalid second-factor code at login, invalid token
- 404: Resource does not exist
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: NEVER caused by user input (internal only)
"""

import uuid
import logging
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PREREQUISITE_NOT_MET = "PREREQUISITE_NOT_MET"

    DUPLICATE_ACCOUNT = "DUPLICATE_ACCOUNT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    MFA_REQUIRED = "MFA_REQUIRED"
    INVALID_CODE = "INVALID_CODE"
    INVALID_TOKEN = "INVALID_TOKEN"

    NOT_FOUND = "NOT_FOUND"

    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    headers: Optional[Dict[str, str]] = None

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_dict(),
            headers=self.headers
        )


class InvalidInputError(APIError):
    """400 Bad Request - malformed or missing fields"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class DuplicateAccountError(APIError):
    """400 Bad Request - email already registered"""
    def __init__(self, message: str = "User already exists with this email"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=ErrorCode.DUPLICATE_ACCOUNT,
            details={"field": "email"}
        )


class InvalidCredentialsError(APIError):
    """401 - unknown email OR wrong password (never says which)"""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message="Invalid credentials",
            code=ErrorCode.INVALID_CREDENTIALS
        )


class MfaRequiredError(APIError):
    """Second factor is active but no code was supplied"""
    def __init__(self, message: str = "MFA token required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="MFA Required",
            message=message,
            code=ErrorCode.MFA_REQUIRED
        )


class InvalidCodeError(APIError):
    """Second-factor code rejected (400 during setup, 401 at login)"""
    def __init__(self, message: str = "Invalid token", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(
            status_code=status_code,
            error="Invalid Code",
            message=message,
            code=ErrorCode.INVALID_CODE
        )


class InvalidTokenError(APIError):
    """401 Unauthorized - session token missing, malformed or expired"""

    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=ErrorCode.INVALID_TOKEN
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=ErrorCode.NOT_FOUND
        )


class InternalError(APIError):
    """500 Internal Server Error - Use sparingly, only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


def internal_error_for(error: Exception, context: str = "") -> InternalError:
    """Log an unexpected failure and build the caller-safe 500 error"""
    log_id = new_log_id()
    logger.error(f"[{log_id}] Internal error in {context}: {type(error).__name__}: {str(error)}")
    return InternalError("An unexpected error occurred. Please try again later.", log_id=log_id)


ERROR_MAPPING = {
    400: ("Bad Request", ErrorCode.INVALID_INPUT),
    401: ("Unauthorized", ErrorCode.INVALID_TOKEN),
    404: ("Not Found", ErrorCode.NOT_FOUND),
    405: ("Method Not Allowed", ErrorCode.INVALID_INPUT),
    422: ("Validation Error", ErrorCode.VALIDATION_ERROR),
    429: ("Too Many Requests", ErrorCode.RATE_LIMITED),
    500: ("Internal Error", ErrorCode.INTERNAL_ERROR),
}
