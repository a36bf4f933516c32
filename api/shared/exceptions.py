"""Shared exceptions for the chat API.

Every exception carries the HTTP status it maps to; ``api.main`` turns them
into ``{"error": ..., "details": ...}`` JSON bodies.
"""
from typing import Any, Dict, Optional


class ChatAppException(Exception):
    """Base exception for the chat API."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(ChatAppException):
    """Raised when a required field is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_INPUT", details)


class NotFoundError(ChatAppException):
    """Raised when a resource is not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "identifier": identifier})


class ForbiddenError(ChatAppException):
    """Raised when the acting user does not own the resource."""

    status_code = 403

    def __init__(self, resource: str, identifier: str, user_id: str):
        message = f"User '{user_id}' may not access {resource.lower()} '{identifier}'"
        super().__init__(
            message,
            "FORBIDDEN",
            {"resource": resource, "identifier": identifier, "user_id": user_id},
        )


class ConfigurationError(ChatAppException):
    """Raised when a required setting (e.g. the model credential) is missing."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class UpstreamFailureError(ChatAppException):
    """Raised when the upstream model call or its stream fails."""

    status_code = 500

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "UPSTREAM_FAILURE", details)


class PersistenceError(ChatAppException):
    """Raised when database operations fail."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)
