"""DTOs for the Chat feature."""
from dataclasses import dataclass
from typing import Optional

from pydantic import Field

from api.features.chat.pacing import Speed
from api.shared.dtos import BaseDTO
from infra.model_clients import ImageAttachment, ModelPrompt


class ChatTurnRequest(BaseDTO):
    """One submitted turn: text and/or an image plus routing identifiers."""

    message: Optional[str] = Field(default=None, description="Message text")
    image: Optional[ImageAttachment] = Field(default=None, description="Attached image")
    user_id: Optional[str] = Field(default=None, description="Acting user")
    conversation_id: Optional[str] = Field(default=None, description="Target conversation")
    speed: Speed = Field(default=Speed.NORMAL, description="Reveal pacing")

    @property
    def text(self) -> str:
        return (self.message or "").strip()

    @property
    def has_image(self) -> bool:
        return self.image is not None


@dataclass
class PreparedTurn:
    """A validated turn with its bookkeeping outcome."""

    prompt: ModelPrompt
    speed: Speed
    user_id: Optional[str] = None
    conversation_id: Optional[str] = None
    user_message_id: Optional[str] = None
    created_conversation: bool = False

    @property
    def can_persist(self) -> bool:
        return bool(self.user_id and self.conversation_id)
