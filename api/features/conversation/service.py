"""Persistence façade for conversations and messages.

Every operation takes the acting user's id and checks ownership before it
reads or mutates anything; each mutation commits on its own, so operations
are individually atomic and no transaction spans more than one call.
"""
import logging
from typing import List, Optional, Tuple, Union, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.entities.conversation import Conversation
from api.features.conversation.entities.message import Message, MessageRole
from api.features.conversation.exceptions import (
    ConversationAccessDeniedError,
    ConversationNotFoundError,
    MessageAccessDeniedError,
    MessageNotFoundError,
)
from api.features.conversation.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.conversation.repositories.message_repository import MessageRepository
from api.features.users.exceptions import UserNotFoundError
from api.features.users.repositories.user_repository import UserRepository
from api.shared.transactions import atomic
from api.shared.dtos import PaginationMeta
from api.shared.exceptions import InvalidInputError
from api.shared.utils import parse_timestamp, serialize_metadata

logger = logging.getLogger("chat.conversation.service")

Metadata = Optional[Union[str, Dict[str, Any]]]


class ConversationService:
    """Service for conversation and message operations."""

    # ---- conversations ----

    async def create_conversation(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        *,
        db_session: AsyncSession,
    ) -> Conversation:
        if not title or not title.strip():
            raise InvalidInputError("Conversation title is required")
        async with atomic(db_session):
            if not await UserRepository(db_session).exists(user_id):
                raise UserNotFoundError(user_id)
            entity = await ConversationRepository(db_session).create(
                Conversation(user_id=user_id, title=title, description=description)
            )
        logger.info(f"Conversation created: {entity.id} (user {user_id})")
        return entity

    async def get_conversation(
        self, conversation_id: str, user_id: str, *, db_session: AsyncSession
    ) -> Conversation:
        """Fetch a conversation the user owns, or raise NotFound/Forbidden."""
        entity = await ConversationRepository(db_session).get_by_id(conversation_id)
        if entity is None:
            raise ConversationNotFoundError(conversation_id)
        if not entity.is_owned_by(user_id):
            raise ConversationAccessDeniedError(conversation_id, user_id)
        return entity

    async def find_owned_conversation(
        self, conversation_id: Optional[str], user_id: str, *, db_session: AsyncSession
    ) -> Optional[Conversation]:
        """Like ``get_conversation`` but returns ``None`` instead of raising."""
        if not conversation_id:
            return None
        entity = await ConversationRepository(db_session).get_by_id(conversation_id)
        if entity is None or not entity.is_owned_by(user_id):
            return None
        return entity

    async def update_conversation_title(
        self,
        conversation_id: str,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        *,
        db_session: AsyncSession,
    ) -> Conversation:
        if not title or not title.strip():
            raise InvalidInputError("Conversation title is required")
        async with atomic(db_session):
            await self.get_conversation(conversation_id, user_id, db_session=db_session)
            values: Dict[str, Any] = {"title": title}
            if description is not None:
                values["description"] = description
            entity = await ConversationRepository(db_session).update_by_id(
                conversation_id, **values
            )
        return entity

    async def list_conversations(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 10,
        *,
        db_session: AsyncSession,
    ) -> Tuple[List[Conversation], PaginationMeta]:
        items, total = await ConversationRepository(db_session).list_by_owner(
            user_id, offset=(page - 1) * page_size, limit=page_size
        )
        return items, PaginationMeta.build(page, page_size, total)

    async def delete_conversation(
        self, conversation_id: str, user_id: str, *, db_session: AsyncSession
    ) -> None:
        """Delete a conversation and all of its messages."""
        async with atomic(db_session):
            await self.get_conversation(conversation_id, user_id, db_session=db_session)
            await ConversationRepository(db_session).delete_with_messages(conversation_id)
        logger.info(f"Conversation deleted: {conversation_id} (user {user_id})")

    async def delete_user_conversations(
        self, user_id: str, *, db_session: AsyncSession
    ) -> int:
        async with atomic(db_session):
            deleted = await ConversationRepository(db_session).delete_all_for_owner(user_id)
        logger.info(f"Deleted {deleted} conversations for user {user_id}")
        return deleted

    # ---- messages ----

    async def create_message(
        self,
        conversation_id: str,
        user_id: str,
        role: str,
        content: str,
        metadata: Metadata = None,
        created_at: Optional[str] = None,
        message_id: Optional[str] = None,
        *,
        db_session: AsyncSession,
    ) -> Message:
        """Append a message to a conversation the user owns."""
        if not content:
            raise InvalidInputError("Message content is required")
        try:
            role = MessageRole(role).value
        except ValueError:
            raise InvalidInputError(f"Unknown message role '{role}'", {"role": role})
        timestamp = parse_timestamp(created_at)

        async with atomic(db_session):
            await self.get_conversation(conversation_id, user_id, db_session=db_session)
            entity = Message(
                topic_id=conversation_id,
                user_id=user_id,
                role=role,
                content=content,
                meta=serialize_metadata(metadata),
                created_at=timestamp,
            )
            if message_id:
                entity.id = message_id
            entity = await MessageRepository(db_session).create(entity)
            await ConversationRepository(db_session).touch(conversation_id)

        logger.info(
            f"Message created: {entity.id} (conversation {conversation_id}, role {role})"
        )
        return entity

    async def list_messages(
        self,
        conversation_id: str,
        user_id: str,
        page: int = 1,
        page_size: int = 50,
        *,
        db_session: AsyncSession,
    ) -> Tuple[List[Message], PaginationMeta]:
        await self.get_conversation(conversation_id, user_id, db_session=db_session)
        items, total = await MessageRepository(db_session).list_by_conversation(
            conversation_id, offset=(page - 1) * page_size, limit=page_size
        )
        meta = PaginationMeta.build(page, page_size, total)
        meta.total_pages = meta.total_pages or 1
        return items, meta

    async def get_message(
        self, message_id: str, user_id: str, *, db_session: AsyncSession
    ) -> Message:
        entity = await MessageRepository(db_session).get_by_id(message_id)
        if entity is None:
            raise MessageNotFoundError(message_id)
        conversation = await ConversationRepository(db_session).get_by_id(entity.topic_id)
        if conversation is None or not conversation.is_owned_by(user_id):
            raise MessageAccessDeniedError(message_id, user_id)
        return entity

    async def get_message_thread(
        self, message_id: str, user_id: str, *, db_session: AsyncSession
    ) -> List[Message]:
        """The message preceded by every earlier message of its conversation."""
        entity = await self.get_message(message_id, user_id, db_session=db_session)
        return await MessageRepository(db_session).list_up_to(entity)

    async def update_message(
        self,
        message_id: str,
        user_id: str,
        content: str,
        metadata: Metadata = None,
        *,
        db_session: AsyncSession,
    ) -> Message:
        if not content:
            raise InvalidInputError("Message content is required")
        async with atomic(db_session):
            await self.get_message(message_id, user_id, db_session=db_session)
            values: Dict[str, Any] = {"content": content}
            if metadata is not None:
                values["meta"] = serialize_metadata(metadata)
            entity = await MessageRepository(db_session).update_by_id(message_id, **values)
        return entity

    async def delete_message(
        self, message_id: str, user_id: str, *, db_session: AsyncSession
    ) -> Message:
        async with atomic(db_session):
            entity = await self.get_message(message_id, user_id, db_session=db_session)
            await MessageRepository(db_session).delete(message_id)
        return entity

    async def search_messages(
        self,
        user_id: str,
        query: str,
        page: int = 1,
        page_size: int = 20,
        *,
        db_session: AsyncSession,
    ) -> Tuple[List[Tuple[Message, Conversation]], PaginationMeta]:
        if not query or not query.strip():
            raise InvalidInputError("Search query is required")
        rows, total = await MessageRepository(db_session).search_for_owner(
            user_id, query.strip(), offset=(page - 1) * page_size, limit=page_size
        )
        return rows, PaginationMeta.build(page, page_size, total)
