"""Message repository using base repository pattern."""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select

from api.features.conversation.entities.conversation import Conversation
from api.features.conversation.entities.message import Message
from api.shared.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for message entities with conversation-scoped queries."""

    model = Message

    async def list_by_conversation(
        self, conversation_id: str, *, offset: int = 0, limit: int = 50
    ) -> Tuple[List[Message], int]:
        """Chronological page of a conversation's messages, ties broken by id."""
        return await self.list(
            offset=offset,
            limit=limit,
            order_by=["created_at", "id"],
            topic_id=conversation_id,
        )

    async def list_up_to(self, message: Message) -> List[Message]:
        """The message and every earlier message of its conversation."""
        stmt = (
            select(Message)
            .where(
                and_(
                    Message.topic_id == message.topic_id,
                    or_(
                        Message.created_at < message.created_at,
                        and_(
                            Message.created_at == message.created_at,
                            Message.id <= message.id,
                        ),
                    ),
                )
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search_for_owner(
        self, user_id: str, query: str, *, offset: int = 0, limit: int = 20
    ) -> Tuple[List[Tuple[Message, Conversation]], int]:
        """Messages in the user's conversations whose content contains ``query``."""
        condition = and_(
            Conversation.user_id == user_id,
            Message.content.contains(query, autoescape=True),
        )
        stmt = (
            select(Message, Conversation)
            .join(Conversation, Message.topic_id == Conversation.id)
            .where(condition)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = (
            select(func.count(Message.id))
            .join(Conversation, Message.topic_id == Conversation.id)
            .where(condition)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(count_stmt)).scalar() or 0
        return [(row[0], row[1]) for row in rows], int(total)

    async def stats_for_owner(
        self, user_id: str
    ) -> Tuple[int, Optional[datetime], Optional[datetime]]:
        """Message count plus first and last message times for a user."""
        stmt = (
            select(
                func.count(Message.id),
                func.min(Message.created_at),
                func.max(Message.created_at),
            )
            .join(Conversation, Message.topic_id == Conversation.id)
            .where(Conversation.user_id == user_id)
        )
        count, first, last = (await self.session.execute(stmt)).one()
        return int(count or 0), first, last
