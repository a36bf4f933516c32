"""Router for the Messages feature."""
from typing import Union

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import MessageDTO
from api.features.messages.controller import MessageController
from api.features.messages.dtos import (
    CreateMessageRequest,
    DeleteMessageResponse,
    MessageEnvelope,
    MessageThreadResponse,
    SearchResponse,
    UpdateMessageRequest,
)
from api.shared.cache import RequestCoalescer, request_cache_key
from api.shared.db import get_db_session
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


# declared before /{message_id} so "search" is not taken for an id
@router.get("/search", response_model=SearchResponse)
@inject
async def search_messages(
    request: Request,
    user_id: str = Query(..., alias="userId", min_length=1),
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.search(user_id, q, page, page_size, db_session=db_session),
    )


@router.get("/{message_id}", response_model=Union[MessageThreadResponse, MessageEnvelope])
@inject
async def get_message(
    request: Request,
    message_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    thread: bool = Query(False),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """A single message, or with ``thread=true`` the conversation up to it."""
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.get_message(message_id, user_id, thread, db_session=db_session),
    )


@router.post("", response_model=MessageDTO, status_code=201)
@inject
async def create_message(
    body: CreateMessageRequest,
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.create_message(body, db_session=db_session)
    request_cache.clear()
    return result


@router.patch("/{message_id}", response_model=MessageDTO)
@inject
async def update_message(
    message_id: str,
    body: UpdateMessageRequest,
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.update_message(message_id, body, db_session=db_session)
    request_cache.clear()
    return result


@router.delete("/{message_id}", response_model=DeleteMessageResponse)
@inject
async def delete_message(
    message_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.delete_message(message_id, user_id, db_session=db_session)
    request_cache.clear()
    return result
