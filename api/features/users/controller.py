"""Controller for the Users feature."""
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.users.dtos import UserDTO, UsernameCheckResponse, UserStatsDTO
from api.features.users.entities.user import User
from api.features.users.service import UserService


def _to_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        username=user.username,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserController:
    def __init__(self, user_service: UserService):
        self.user_service = user_service

    async def get_or_create(self, username: str, *, db_session: AsyncSession) -> UserDTO:
        user = await self.user_service.get_or_create_user(username, db_session=db_session)
        return _to_dto(user)

    async def get_by_username(self, username: str, *, db_session: AsyncSession) -> UserDTO:
        user = await self.user_service.get_user_by_username(username, db_session=db_session)
        return _to_dto(user)

    async def check_username(
        self, username: str, *, db_session: AsyncSession
    ) -> UsernameCheckResponse:
        exists = await self.user_service.username_exists(username, db_session=db_session)
        return UsernameCheckResponse(exists=exists)

    async def get_stats(self, user_id: str, *, db_session: AsyncSession) -> UserStatsDTO:
        return await self.user_service.get_user_stats(user_id, db_session=db_session)
