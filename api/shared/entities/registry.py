"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so ``BaseEntity.metadata.create_all`` sees them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: Users
from api.features.users.entities.user import User  # noqa: F401

# Feature: Conversation
from api.features.conversation.entities.conversation import Conversation  # noqa: F401
from api.features.conversation.entities.message import Message  # noqa: F401
