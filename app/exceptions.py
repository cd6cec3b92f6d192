from typing import Any, Mapping, Optional


class ServiceError(Exception):
    """Base class for errors the API turns into a structured JSON response.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context (field errors, missing names)
        code: machine-readable error code
        http_status: suggested HTTP status code for handlers
    """

    http_status = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str = "Unexpected error", details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return self.message


class ServiceValidationError(ServiceError):
    """Raised when input data is invalid or a food reference cannot be resolved.

    http_status is 400.
    """

    http_status = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Invalid input", details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message, details, code)


class ConflictError(ServiceError):
    """Raised on a duplicate canonical name or a reused idempotency key.

    http_status is 409.
    """

    http_status = 409
    default_code = "CONFLICT"

    def __init__(self, message: str = "Conflict", details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message, details, code)


class UnauthorizedError(ServiceError):
    """Raised when the caller or the stored Fitbit credential is not authenticated.

    http_status is 401.
    """

    http_status = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message, details, code)


class NoCredentialsError(UnauthorizedError):
    """No Fitbit token has been stored yet; the OAuth flow must be completed."""

    default_code = "NO_CREDENTIALS"

    def __init__(self, message: str = "No tokens found. Please complete OAuth flow via /auth/start"):
        super().__init__(message)


class UpstreamAuthError(UnauthorizedError):
    """Fitbit rejected a token exchange (authorization code or refresh token)."""

    default_code = "UPSTREAM_AUTH_FAILED"

    def __init__(self, message: str, status: int, body: str):
        super().__init__(message, {"status": status, "body": body})
        self.status = status
        self.body = body


class UpstreamError(ServiceError):
    """Fitbit answered a REST call with a non-2xx status.

    Carries the upstream status and the raw response body verbatim.
    http_status is 502.
    """

    http_status = 502
    default_code = "FITBIT_UPSTREAM_ERROR"

    def __init__(self, status: Optional[int], body: str, message: Optional[str] = None):
        if message is None:
            message = f"Fitbit responded with HTTP {status}" if status else "Could not reach Fitbit"
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["status"] = self.status
        payload["body"] = self.body
        return payload
