"""Exceptions for the Users feature."""
from api.shared.exceptions import NotFoundError


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found by id or username."""

    def __init__(self, identifier: str):
        super().__init__("User", identifier)
