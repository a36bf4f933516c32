"""Message entity."""
import json
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.shared.entities.base import BaseEntity

if TYPE_CHECKING:
    from api.features.conversation.entities.conversation import Conversation


class MessageRole(str, Enum):
    """Who authored a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseEntity):
    """One message of a conversation; insertion order is display order."""

    __tablename__ = "messages"

    topic_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Optional[str]] = mapped_column("metadata", Text)

    conversation: Mapped["Conversation"] = relationship(
        back_populates="messages", lazy="raise"
    )

    __table_args__ = (
        Index("idx_messages_topic_created", "topic_id", "created_at"),
    )

    @property
    def meta_dict(self) -> Optional[Dict[str, Any]]:
        """Decoded metadata, or ``None`` when absent or not JSON."""
        if not self.meta:
            return None
        try:
            decoded = json.loads(self.meta)
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
