"""Router for the Users feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.users.controller import UserController
from api.features.users.dtos import (
    CreateUserRequest,
    UserDTO,
    UsernameCheckResponse,
    UserStatsDTO,
)
from api.shared.cache import RequestCoalescer, request_cache_key
from api.shared.db import get_db_session
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post("", response_model=UserDTO)
@inject
async def get_or_create_user(
    body: CreateUserRequest,
    controller: UserController = Depends(Provide[DependencyContainer.controllers.user_controller]),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Return the user with this name, creating it on first sight."""
    result = await controller.get_or_create(body.username, db_session=db_session)
    request_cache.clear()
    return result


@router.get("", response_model=UserDTO)
@inject
async def get_user_by_username(
    request: Request,
    username: str = Query(..., min_length=1),
    controller: UserController = Depends(Provide[DependencyContainer.controllers.user_controller]),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.get_by_username(username, db_session=db_session),
    )


@router.get("/check", response_model=UsernameCheckResponse)
@inject
async def check_username(
    username: str = Query(..., min_length=1),
    controller: UserController = Depends(Provide[DependencyContainer.controllers.user_controller]),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.check_username(username, db_session=db_session)


@router.get("/{user_id}/stats", response_model=UserStatsDTO)
@inject
async def get_user_stats(
    request: Request,
    user_id: str,
    controller: UserController = Depends(Provide[DependencyContainer.controllers.user_controller]),
    request_cache: RequestCoalescer = Depends(
        Provide[DependencyContainer.infrastructure.request_cache]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Message count plus first/last message time across all conversations."""
    return await request_cache.run(
        request_cache_key(request),
        lambda: controller.get_stats(user_id, db_session=db_session),
    )
