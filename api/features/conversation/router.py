"""Router for the Conversation feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    ClearHistoryResponse,
    ConversationDTO,
    ConversationListResponse,
    CreateConversationRequest,
    MessagesResponse,
    UpdateConversationRequest,
)
from api.shared.cache import RequestCoalescer, request_cache_key
from api.shared.db import get_db_session
from api.shared.dtos import SuccessResponse
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.get("", response_model=ConversationListResponse)
@inject
async def list_conversations(
    request: Request,
    user_id: str = Query(..., alias="userId", min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """List a user's conversations, most recently active first."""
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.list_conversations(
            user_id, page, page_size, db_session=db_session
        ),
    )


@router.post("", response_model=ConversationDTO, status_code=201)
@inject
async def create_conversation(
    body: CreateConversationRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.create_conversation(body, db_session=db_session)
    request_cache.clear()
    return result


@router.delete("", response_model=ClearHistoryResponse)
@inject
async def clear_history(
    user_id: str = Query(..., alias="userId", min_length=1),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete every conversation (and message) the user owns."""
    result = await controller.clear_history(user_id, db_session=db_session)
    request_cache.clear()
    return result


@router.get("/{conversation_id}", response_model=ConversationDTO)
@inject
async def get_conversation(
    request: Request,
    conversation_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.get_conversation(conversation_id, user_id, db_session=db_session),
    )


@router.patch("/{conversation_id}", response_model=ConversationDTO)
@inject
async def rename_conversation(
    conversation_id: str,
    body: UpdateConversationRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.rename_conversation(conversation_id, body, db_session=db_session)
    request_cache.clear()
    return result


@router.delete("/{conversation_id}", response_model=SuccessResponse)
@inject
async def delete_conversation(
    conversation_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete a conversation together with all of its messages."""
    result = await controller.delete_conversation(conversation_id, user_id, db_session=db_session)
    request_cache.clear()
    return result


@router.get("/{conversation_id}/messages", response_model=MessagesResponse)
@inject
async def get_messages(
    request: Request,
    conversation_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200, alias="pageSize"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Messages of one conversation in chronological order."""
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.get_messages(
            conversation_id, user_id, page, page_size, db_session=db_session
        ),
    )
