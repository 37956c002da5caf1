from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": message,
                "code": error_code,
                "details": self.details,
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )


class ValidationError(BaseAPIException):
    """Validation errors

    기본은 422 이며, 비즈니스 입력 오류(잘못된 상태값, 수량 등)는 400 으로 내려준다.
    """
    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict] = None,
        status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
    ):
        super().__init__(
            status_code=status_code,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )


class BusinessLogicError(BaseAPIException):
    """Business logic errors"""
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details
        )


class InvalidStateError(BusinessLogicError):
    """Resource is not in a state that allows the operation"""
    def __init__(self, message: str = "Invalid state", details: Optional[Dict] = None):
        super().__init__(error_code="STATE_001", message=message, details=details)


class InsufficientStockError(BusinessLogicError):
    """Product stock cannot cover the requested quantity"""
    def __init__(self, message: str = "Insufficient stock", details: Optional[Dict] = None):
        super().__init__(error_code="STOCK_001", message=message, details=details)


class InsufficientPointsError(BusinessLogicError):
    """User balance cannot cover the requested amount"""
    def __init__(self, message: str = "Insufficient points", details: Optional[Dict] = None):
        super().__init__(error_code="BALANCE_001", message=message, details=details)


class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )


class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details
        )


class InfrastructureError(BaseAPIException):
    """Database or other infrastructure failures"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )
