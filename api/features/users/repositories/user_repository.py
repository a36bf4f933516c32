"""User repository using base repository pattern."""
from typing import Optional

from api.features.users.entities.user import User
from api.shared.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for user entities."""

    model = User

    async def get_by_username(self, username: str) -> Optional[User]:
        entities = await self.get_by_field("username", username, limit=1)
        return entities[0] if entities else None
