"""User entity."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class User(BaseEntity):
    """A chat participant identified by a unique display name."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
