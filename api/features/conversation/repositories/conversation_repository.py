"""Conversation repository using base repository pattern."""
from typing import List, Tuple

from sqlalchemy import delete, select

from api.features.conversation.entities.conversation import Conversation
from api.features.conversation.entities.message import Message
from api.shared.base import BaseRepository
from api.shared.entities.base import utcnow


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation entities."""

    model = Conversation

    async def list_by_owner(
        self, user_id: str, *, offset: int = 0, limit: int = 10
    ) -> Tuple[List[Conversation], int]:
        """Most recently updated first."""
        return await self.list(
            offset=offset, limit=limit, order_by="-updated_at", user_id=user_id
        )

    async def touch(self, conversation_id: str) -> None:
        """Bump ``updated_at`` after a new message."""
        await self.update_by_id(conversation_id, updated_at=utcnow())

    async def delete_with_messages(self, conversation_id: str) -> bool:
        """Delete a conversation and every message under it."""
        await self.session.execute(
            delete(Message).where(Message.topic_id == conversation_id)
        )
        return await self.delete(conversation_id)

    async def delete_all_for_owner(self, user_id: str) -> int:
        """Delete every conversation (and message) owned by ``user_id``."""
        owned = select(Conversation.id).where(Conversation.user_id == user_id)
        await self.session.execute(delete(Message).where(Message.topic_id.in_(owned)))
        return await self.delete_by_field("user_id", user_id)
