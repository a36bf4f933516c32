"""Service layer for the Users feature."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.repositories.message_repository import MessageRepository
from api.features.users.dtos import UserStatsDTO
from api.features.users.entities.user import User
from api.features.users.exceptions import UserNotFoundError
from api.features.users.repositories.user_repository import UserRepository
from api.shared.transactions import atomic
from api.shared.exceptions import InvalidInputError, PersistenceError

logger = logging.getLogger("chat.users.service")


class UserService:
    """Username lookup with lazy creation."""

    async def get_or_create_user(self, username: str, *, db_session: AsyncSession) -> User:
        username = (username or "").strip()
        if not username:
            raise InvalidInputError("Username is required")

        existing = await UserRepository(db_session).get_by_username(username)
        if existing:
            return existing

        try:
            async with atomic(db_session):
                user = await UserRepository(db_session).create(User(username=username))
        except PersistenceError as e:
            # Lost a race against a concurrent signup with the same name
            if isinstance(e.__cause__, IntegrityError):
                user = await UserRepository(db_session).get_by_username(username)
                if user:
                    return user
            raise
        logger.info(f"User created: {user.id} ({username})")
        return user

    async def get_user_by_username(self, username: str, *, db_session: AsyncSession) -> User:
        if not username:
            raise InvalidInputError("Username is required")
        user = await UserRepository(db_session).get_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    async def username_exists(self, username: str, *, db_session: AsyncSession) -> bool:
        if not username:
            raise InvalidInputError("Username is required")
        return await UserRepository(db_session).get_by_username(username) is not None

    async def get_user(self, user_id: str, *, db_session: AsyncSession) -> Optional[User]:
        return await UserRepository(db_session).get_by_id(user_id)

    async def get_user_stats(self, user_id: str, *, db_session: AsyncSession) -> UserStatsDTO:
        if not await UserRepository(db_session).exists(user_id):
            raise UserNotFoundError(user_id)
        count, first, last = await MessageRepository(db_session).stats_for_owner(user_id)
        return UserStatsDTO(message_count=count, first_message=first, last_message=last)
