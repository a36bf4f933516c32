"""Controller for the Conversation feature."""

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    ClearHistoryResponse,
    ConversationDTO,
    ConversationListResponse,
    CreateConversationRequest,
    MessageDTO,
    MessagesResponse,
    UpdateConversationRequest,
)
from api.features.conversation.service import ConversationService
from api.shared.dtos import SuccessResponse


class ConversationController:
    """Controller handling conversation CRUD and message listing."""

    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def create_conversation(
        self, request: CreateConversationRequest, *, db_session: AsyncSession
    ) -> ConversationDTO:
        entity = await self.conversation_service.create_conversation(
            request.user_id, request.title, request.description, db_session=db_session
        )
        return ConversationDTO.from_entity(entity)

    async def get_conversation(
        self, conversation_id: str, user_id: str, *, db_session: AsyncSession
    ) -> ConversationDTO:
        entity = await self.conversation_service.get_conversation(
            conversation_id, user_id, db_session=db_session
        )
        return ConversationDTO.from_entity(entity)

    async def list_conversations(
        self, user_id: str, page: int, page_size: int, *, db_session: AsyncSession
    ) -> ConversationListResponse:
        items, pagination = await self.conversation_service.list_conversations(
            user_id, page, page_size, db_session=db_session
        )
        return ConversationListResponse(
            items=[ConversationDTO.from_entity(i) for i in items], pagination=pagination
        )

    async def rename_conversation(
        self,
        conversation_id: str,
        request: UpdateConversationRequest,
        *,
        db_session: AsyncSession,
    ) -> ConversationDTO:
        entity = await self.conversation_service.update_conversation_title(
            conversation_id,
            request.user_id,
            request.title,
            request.description,
            db_session=db_session,
        )
        return ConversationDTO.from_entity(entity)

    async def delete_conversation(
        self, conversation_id: str, user_id: str, *, db_session: AsyncSession
    ) -> SuccessResponse:
        await self.conversation_service.delete_conversation(
            conversation_id, user_id, db_session=db_session
        )
        return SuccessResponse()

    async def clear_history(
        self, user_id: str, *, db_session: AsyncSession
    ) -> ClearHistoryResponse:
        deleted = await self.conversation_service.delete_user_conversations(
            user_id, db_session=db_session
        )
        return ClearHistoryResponse(deleted=deleted)

    async def get_messages(
        self,
        conversation_id: str,
        user_id: str,
        page: int,
        page_size: int,
        *,
        db_session: AsyncSession,
    ) -> MessagesResponse:
        items, pagination = await self.conversation_service.list_messages(
            conversation_id, user_id, page, page_size, db_session=db_session
        )
        return MessagesResponse(
            items=[MessageDTO.from_entity(m) for m in items], pagination=pagination
        )
