"""Controller for the Chat feature."""
from typing import Awaitable, Callable, Optional

from fastapi.responses import StreamingResponse

from api.features.chat.dtos import ChatTurnRequest
from api.features.chat.service import ChatRelayService
from api.features.chat.sse import SSE_HEADERS, SSE_MEDIA_TYPE


class ChatController:
    """Starts a turn and hands the relay generator to the transport."""

    def __init__(self, relay_service: ChatRelayService):
        self.relay_service = relay_service

    async def start_turn(
        self,
        request: ChatTurnRequest,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> StreamingResponse:
        # Validation, configuration and upstream-open errors are raised here,
        # before the event stream starts, and become JSON error responses.
        turn = await self.relay_service.prepare_turn(request)
        upstream = await self.relay_service.open_upstream(turn)

        headers = dict(SSE_HEADERS)
        if turn.conversation_id:
            headers["X-Conversation-Id"] = turn.conversation_id
        return StreamingResponse(
            self.relay_service.relay(turn, upstream, is_disconnected),
            media_type=SSE_MEDIA_TYPE,
            headers=headers,
        )
