from typing import Optional, Dict, Any


class CustomException(Exception):
    """Base for streak errors; carries the HTTP status the API answers with"""

    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"code": self.error_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class AuthenticationError(CustomException):
    """Bearer token missing a uid, expired, revoked or unverifiable"""
    status_code = 401
    error_code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class NoIdentityError(CustomException):
    """No signed-in user; the streak stays in memory only"""
    status_code = 401
    error_code = "NO_IDENTITY"

    def __init__(self, message: str = "No signed-in user"):
        super().__init__(message)


class RemoteUnavailableError(CustomException):
    """Remote streak store could not be read or written"""
    status_code = 503
    error_code = "REMOTE_UNAVAILABLE"

    def __init__(self, message: str, service_name: str = "firestore", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, {**(details or {}), "service": service_name})


class LocalUnavailableError(CustomException):
    """Local fallback cache could not be read or written"""
    error_code = "LOCAL_CACHE_ERROR"


class MalformedStoredRecordError(CustomException):
    """Stored streak record could not be decoded"""
    status_code = 422
    error_code = "MALFORMED_STORED_RECORD"

    def __init__(self, message: str, source: str = "unknown", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, {**(details or {}), "source": source})


class CircuitBreakerError(CustomException):
    """Remote store call refused by an open circuit, or timed out"""
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"

    def __init__(self, service_name: str, reason: str = "circuit open"):
        self.service_name = service_name
        super().__init__(
            f"Service {service_name} is temporarily unavailable ({reason})",
            {"service": service_name}
        )
