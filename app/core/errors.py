"""Error taxonomy for the auth core. Each kind carries its HTTP status and a client-safe message."""


class AuthServiceError(Exception):
    """Base for every failure the auth core resolves locally before it reaches the caller."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class InvalidCredentials(AuthServiceError):
    status_code = 401
    default_message = "Invalid email or password"


class MissingToken(AuthServiceError):
    status_code = 401
    default_message = "Valid Bearer token is required"


class InvalidToken(AuthServiceError):
    status_code = 403
    default_message = "Invalid token"


class InvalidTokenType(AuthServiceError):
    status_code = 401
    default_message = "Invalid token type"


class TokenExpired(AuthServiceError):
    status_code = 401
    default_message = "Token has expired"


class InvalidRefreshToken(AuthServiceError):
    status_code = 403
    default_message = "Invalid refresh token"


class AuthenticationRequired(AuthServiceError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AuthServiceError):
    status_code = 403
    default_message = "Access denied"


class ValidationError(AuthServiceError):
    status_code = 400
    default_message = "Invalid input"


class InvalidOldPassword(AuthServiceError):
    status_code = 400
    default_message = "Old password is incorrect"


class PasswordReused(AuthServiceError):
    status_code = 400
    default_message = "New password cannot be the same as old password"


class NotFound(AuthServiceError):
    status_code = 404
    default_message = "Not found"


class InvalidOrExpiredToken(AuthServiceError):
    status_code = 404
    default_message = "Invalid or expired token"


class Conflict(AuthServiceError):
    status_code = 409
    default_message = "Email already exists"


class NotificationFailed(AuthServiceError):
    status_code = 500
    default_message = "Failed to send email"


class StoreUnavailable(AuthServiceError):
    """Persistence unreachable or timed out; safe for the client to retry."""

    status_code = 503
    default_message = "Service temporarily unavailable"
