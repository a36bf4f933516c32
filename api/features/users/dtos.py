"""DTOs for the Users feature."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from api.shared.dtos import BaseDTO


class CreateUserRequest(BaseDTO):
    """Fetch-or-create a user by name."""

    username: str = Field(..., min_length=1, max_length=255, description="Display name")


class UserDTO(BaseDTO):
    """User DTO."""

    id: str = Field(description="User identifier")
    username: str = Field(description="Unique display name")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")


class UsernameCheckResponse(BaseDTO):
    exists: bool = Field(description="Whether the username is taken")


class UserStatsDTO(BaseDTO):
    """Message activity of a user across all of their conversations."""

    message_count: int = Field(description="Number of messages")
    first_message: Optional[datetime] = Field(default=None, description="Oldest message time")
    last_message: Optional[datetime] = Field(default=None, description="Newest message time")
