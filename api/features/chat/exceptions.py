"""Exceptions for the Chat feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import ConfigurationError, InvalidInputError


class EmptyTurnError(InvalidInputError):
    """Raised when a turn carries neither text nor an image."""

    def __init__(self) -> None:
        super().__init__("Either a message or an image is required")


class ModelNotConfiguredError(ConfigurationError):
    """Raised when the upstream model credential is missing."""

    def __init__(self, provider: str, details: Optional[Dict[str, Any]] = None):
        error_details = {"provider": provider}
        if details:
            error_details.update(details)
        super().__init__(
            f"The {provider} model API key is not configured; set MODEL_API_KEY",
            error_details,
        )
