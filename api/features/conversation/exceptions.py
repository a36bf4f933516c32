"""Exceptions for the Conversation feature."""
from api.shared.exceptions import ForbiddenError, NotFoundError


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation is not found."""

    def __init__(self, conversation_id: str):
        super().__init__("Conversation", conversation_id)


class ConversationAccessDeniedError(ForbiddenError):
    """Raised when a conversation belongs to a different user."""

    def __init__(self, conversation_id: str, user_id: str):
        super().__init__("Conversation", conversation_id, user_id)


class MessageNotFoundError(NotFoundError):
    """Raised when a message is not found."""

    def __init__(self, message_id: str):
        super().__init__("Message", message_id)


class MessageAccessDeniedError(ForbiddenError):
    """Raised when a message lives in another user's conversation."""

    def __init__(self, message_id: str, user_id: str):
        super().__init__("Message", message_id, user_id)
