"""Controller for the Messages feature."""
from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import MessageDTO
from api.features.conversation.service import ConversationService
from api.features.messages.dtos import (
    ConversationRef,
    CreateMessageRequest,
    DeleteMessageResponse,
    MessageEnvelope,
    MessageThreadResponse,
    SearchHitDTO,
    SearchResponse,
    UpdateMessageRequest,
)
from api.shared.exceptions import InvalidInputError


class MessageController:
    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def get_message(
        self, message_id: str, user_id: str, thread: bool, *, db_session: AsyncSession
    ) -> Union[MessageEnvelope, MessageThreadResponse]:
        if thread:
            messages = await self.conversation_service.get_message_thread(
                message_id, user_id, db_session=db_session
            )
            return MessageThreadResponse(messages=[MessageDTO.from_entity(m) for m in messages])
        message = await self.conversation_service.get_message(
            message_id, user_id, db_session=db_session
        )
        return MessageEnvelope(message=MessageDTO.from_entity(message))

    async def create_message(
        self, request: CreateMessageRequest, *, db_session: AsyncSession
    ) -> MessageDTO:
        if not request.parent_id:
            raise InvalidInputError("topicId is required")
        message = await self.conversation_service.create_message(
            request.parent_id,
            request.user_id,
            request.role,
            request.content,
            metadata=request.metadata,
            created_at=request.created_at,
            message_id=request.id,
            db_session=db_session,
        )
        return MessageDTO.from_entity(message)

    async def update_message(
        self, message_id: str, request: UpdateMessageRequest, *, db_session: AsyncSession
    ) -> MessageDTO:
        message = await self.conversation_service.update_message(
            message_id,
            request.user_id,
            request.content,
            metadata=request.metadata,
            db_session=db_session,
        )
        return MessageDTO.from_entity(message)

    async def delete_message(
        self, message_id: str, user_id: str, *, db_session: AsyncSession
    ) -> DeleteMessageResponse:
        message = await self.conversation_service.delete_message(
            message_id, user_id, db_session=db_session
        )
        return DeleteMessageResponse(deleted_message=MessageDTO.from_entity(message))

    async def search(
        self, user_id: str, query: str, page: int, page_size: int, *, db_session: AsyncSession
    ) -> SearchResponse:
        rows, pagination = await self.conversation_service.search_messages(
            user_id, query, page, page_size, db_session=db_session
        )
        hits = [
            SearchHitDTO(
                message=MessageDTO.from_entity(message),
                conversation=ConversationRef(
                    id=conversation.id,
                    title=conversation.title,
                    updated_at=conversation.updated_at,
                ),
            )
            for message, conversation in rows
        ]
        return SearchResponse(items=hits, pagination=pagination)
