"""Error types raised by services and routes.

Every error is an ``HTTPException`` so FastAPI routes can raise them directly;
the handlers in ``middleware.py`` turn them into the
``{"success": false, "message": ...}`` envelope.
"""
from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"

    def __init__(self, message=None, status_code=None, headers=None):
        super().__init__(
            status_code=status_code or self.status_code,
            detail=message or self.message,
            headers=headers,
        )


class ValidationFailed(ApiError):
    message = "Validation failed"


class DuplicateEmail(ApiError):
    message = "User already exists"


class InvalidCredentials(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class NotAuthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authorized"

    def __init__(self, message=None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid or expired token"


class InvalidRefreshToken(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid refresh token"


class InvalidOrExpiredToken(ApiError):
    message = "Invalid or expired token"


class AccountSuspended(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Account is suspended"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Not authorized to access this route"


class UserNotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class NoActiveSubscription(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "No active subscription found"


class SignatureVerificationFailed(ApiError):
    message = "Webhook signature verification failed"


class PaymentProviderError(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Payment provider request failed"
