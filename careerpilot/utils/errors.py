"""
Application error type and message sanitization.

AppError carries a string code and optional context (component, action,
user_id, data). The exception handlers in main.py turn it into the JSON
envelope clients expect: {"success": false, "error": ..., "code": ...}.
"""
import re
from typing import Any, Dict, Optional

# Patterns for sensitive data that should never reach logs or clients
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
]

UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class AppError(Exception):
    """Error with a stable string code, safe to show to users."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


def sanitize_error_message(message: str) -> str:
    """Remove credentials and similar secrets from an error message."""
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def handle_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    """
    Map any exception to a user-facing {message, code} pair and report it
    as an `error` app event.
    """
    from careerpilot.services import app_events

    context = context or {}
    if isinstance(error, AppError):
        merged = {**error.context, **context}
        app_events.track_error(error.code, error.message, **merged)
        return {"message": error.message, "code": error.code}

    app_events.track_error(UNEXPECTED_ERROR, sanitize_error_message(str(error)), **context)
    return {"message": "An unexpected error occurred", "code": UNEXPECTED_ERROR}
