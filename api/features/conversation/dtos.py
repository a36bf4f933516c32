"""DTOs for the Conversation feature."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from api.features.conversation.entities.conversation import Conversation
from api.features.conversation.entities.message import Message
from api.shared.dtos import BaseDTO, PaginatedResponse


class CreateConversationRequest(BaseDTO):
    """Request to create a conversation."""

    user_id: str = Field(..., min_length=1, description="Owning user")
    title: str = Field(..., min_length=1, max_length=500, description="Conversation title")
    description: Optional[str] = Field(default=None, description="Optional description")


class UpdateConversationRequest(BaseDTO):
    """Rename a conversation."""

    user_id: str = Field(..., min_length=1, description="Acting user")
    title: str = Field(..., min_length=1, max_length=500, description="New title")
    description: Optional[str] = Field(default=None, description="New description")


class ConversationDTO(BaseDTO):
    """Conversation DTO."""

    id: str = Field(description="Conversation identifier")
    user_id: str = Field(description="Owning user")
    title: str = Field(description="Conversation title")
    description: Optional[str] = Field(default=None, description="Conversation description")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last activity timestamp")

    @classmethod
    def from_entity(cls, entity: Conversation) -> "ConversationDTO":
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            title=entity.title,
            description=entity.description,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    id: str = Field(description="Message identifier")
    topic_id: str = Field(description="Parent conversation")
    user_id: str = Field(description="Owning user")
    role: str = Field(description="Message role: user, assistant or system")
    content: str = Field(description="Message content")
    metadata: Optional[str] = Field(default=None, description="Serialized metadata")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: Message) -> "MessageDTO":
        return cls(
            id=entity.id,
            topic_id=entity.topic_id,
            user_id=entity.user_id,
            role=entity.role,
            content=entity.content,
            metadata=entity.meta,
            created_at=entity.created_at,
        )


class ConversationListResponse(PaginatedResponse[ConversationDTO]):
    """A page of conversations, most recently active first."""


class MessagesResponse(PaginatedResponse[MessageDTO]):
    """A page of messages in chronological order."""


class ClearHistoryResponse(BaseDTO):
    success: bool = Field(default=True)
    deleted: int = Field(description="Number of conversations removed")
