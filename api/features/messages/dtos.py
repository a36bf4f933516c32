"""DTOs for the Messages feature."""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from api.features.conversation.dtos import MessageDTO
from api.shared.dtos import BaseDTO, PaginatedResponse


class CreateMessageRequest(BaseDTO):
    """Append a message to a conversation.

    The parent may be given as ``topicId`` or ``conversationId``; an explicit
    ``id`` and ``createdAt`` are kept when supplied (client-side imports).
    """

    id: Optional[str] = Field(default=None, max_length=36)
    topic_id: Optional[str] = Field(default=None)
    conversation_id: Optional[str] = Field(default=None)
    user_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    metadata: Optional[Union[str, Dict[str, Any]]] = Field(default=None)
    created_at: Optional[str] = Field(default=None)

    @property
    def parent_id(self) -> Optional[str]:
        return self.topic_id or self.conversation_id


class UpdateMessageRequest(BaseDTO):
    user_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    metadata: Optional[Union[str, Dict[str, Any]]] = Field(default=None)


class MessageEnvelope(BaseDTO):
    message: MessageDTO


class MessageThreadResponse(BaseDTO):
    """A message preceded by every earlier message of its conversation."""

    messages: List[MessageDTO]


class DeleteMessageResponse(BaseDTO):
    success: bool = Field(default=True)
    deleted_message: MessageDTO


class ConversationRef(BaseDTO):
    id: str
    title: str
    updated_at: datetime


class SearchHitDTO(BaseDTO):
    message: MessageDTO
    conversation: ConversationRef


class SearchResponse(PaginatedResponse[SearchHitDTO]):
    """Matching messages across the user's conversations, newest first."""
