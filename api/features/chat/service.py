"""Streaming relay: turn bookkeeping, upstream call and SSE translation.

Ordering within one turn:

1. the user message is saved before the model call is issued;
2. chunks are forwarded in upstream order, one paced event each;
3. the assistant message is saved after the upstream stream ends and before
   the terminal ``end`` event.

Bookkeeping writes are best effort: a failed write is logged and the turn
carries on. There is no transaction around the whole turn, so a crash
between the two writes leaves a user message without a reply.
"""
import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, Optional

import structlog

from api.features.chat.dtos import ChatTurnRequest, PreparedTurn
from api.features.chat.exceptions import EmptyTurnError, ModelNotConfiguredError
from api.features.chat.frames import RawFrame, forwardable_text, parse_chunk
from api.features.chat.pacing import Pacer
from api.features.chat.sse import end_event, message_id_event, text_event
from api.features.conversation.entities.message import MessageRole
from api.features.conversation.service import ConversationService
from api.features.users.service import UserService
from api.shared.cache import RequestCoalescer
from api.shared.exceptions import UpstreamFailureError
from api.shared.utils import truncate_text
from infra.model_clients import ModelPrompt, ModelStreamClient, UpstreamStream
from infra.resources import DatabaseResource

logger = structlog.get_logger("chat.relay")

IMAGE_ONLY_CONTENT = "[image]"
UNTITLED_CONVERSATION = "New conversation"

DisconnectProbe = Callable[[], Awaitable[bool]]


class ChatRelayService:
    """Relays one chat turn between the client and the upstream model."""

    def __init__(
        self,
        database: DatabaseResource,
        model_client: ModelStreamClient,
        pacer: Pacer,
        conversation_service: ConversationService,
        user_service: UserService,
        title_max_chars: int = 50,
        request_cache: Optional[RequestCoalescer] = None,
    ):
        self.database = database
        self.model_client = model_client
        self.pacer = pacer
        self.conversation_service = conversation_service
        self.user_service = user_service
        self.title_max_chars = title_max_chars
        self.request_cache = request_cache

    def derive_title(self, text: str) -> str:
        if not text:
            return UNTITLED_CONVERSATION
        return truncate_text(text, self.title_max_chars)

    # ---- pre-call ----

    async def prepare_turn(self, request: ChatTurnRequest) -> PreparedTurn:
        """Validate the turn and record the inbound user message."""
        if not request.text and not request.has_image:
            raise EmptyTurnError()
        if not self.model_client.is_configured:
            raise ModelNotConfiguredError(self.model_client.name)

        turn = PreparedTurn(
            prompt=ModelPrompt(text=request.message or "", image=request.image),
            speed=request.speed,
        )
        if request.user_id:
            await self._record_user_turn(turn, request)

        logger.info(
            "turn.started",
            user_id=turn.user_id,
            conversation_id=turn.conversation_id,
            created_conversation=turn.created_conversation,
            has_image=request.has_image,
            speed=turn.speed.value,
        )
        return turn

    async def _record_user_turn(self, turn: PreparedTurn, request: ChatTurnRequest) -> None:
        session = self.database.get_session()
        try:
            try:
                user = await self.user_service.get_user(request.user_id, db_session=session)
            except Exception:
                logger.exception("turn.user_lookup_failed", user_id=request.user_id)
                return
            if user is None:
                logger.warning("turn.unknown_user", user_id=request.user_id)
                return
            # plain ids only from here on: a rolled-back write expires ORM instances
            user_id = turn.user_id = user.id

            try:
                conversation = await self.conversation_service.find_owned_conversation(
                    request.conversation_id, user_id, db_session=session
                )
                if conversation is None:
                    if request.conversation_id:
                        logger.warning(
                            "turn.conversation_not_owned",
                            user_id=user_id,
                            conversation_id=request.conversation_id,
                        )
                    conversation = await self.conversation_service.create_conversation(
                        user_id, self.derive_title(request.text), db_session=session
                    )
                    turn.created_conversation = True
                turn.conversation_id = conversation.id
            except Exception:
                logger.exception("turn.conversation_failed", user_id=user_id)
                return

            try:
                message = await self.conversation_service.create_message(
                    turn.conversation_id,
                    user_id,
                    MessageRole.USER.value,
                    request.message if request.text else IMAGE_ONLY_CONTENT,
                    metadata=self._image_metadata(request),
                    db_session=session,
                )
                turn.user_message_id = message.id
            except Exception:
                logger.exception(
                    "turn.user_message_failed",
                    user_id=user_id,
                    conversation_id=turn.conversation_id,
                )
        finally:
            await session.close()
            self._invalidate_reads()

    @staticmethod
    def _image_metadata(request: ChatTurnRequest) -> Optional[str]:
        if request.image is None:
            return None
        return json.dumps(
            {
                "hasImage": True,
                "imageName": request.image.filename,
                "imageType": request.image.media_type,
                "imageSize": len(request.image.data),
            }
        )

    # ---- model call ----

    async def open_upstream(self, turn: PreparedTurn) -> UpstreamStream:
        """Open the streamed model call; errors here happen before any output."""
        try:
            return await self.model_client.open_stream(turn.prompt)
        except UpstreamFailureError:
            logger.exception("turn.upstream_open_failed", conversation_id=turn.conversation_id)
            raise
        except Exception as e:
            logger.exception("turn.upstream_open_failed", conversation_id=turn.conversation_id)
            raise UpstreamFailureError(self.model_client.name, str(e)) from e

    # ---- relay ----

    async def relay(
        self,
        turn: PreparedTurn,
        upstream: UpstreamStream,
        is_disconnected: Optional[DisconnectProbe] = None,
    ) -> AsyncIterator[str]:
        """Yield SSE frames for the turn, then persist and close.

        A cancelled turn (client gone, task cancelled, generator closed)
        stops reading upstream and never saves the partial reply.
        """
        log = logger.bind(user_id=turn.user_id, conversation_id=turn.conversation_id)
        reply: list[str] = []

        try:
            async for chunk in upstream:
                frames = parse_chunk(chunk) if upstream.framed else [RawFrame(chunk)]
                for frame in frames:
                    text = forwardable_text(frame)
                    if not text:
                        continue
                    reply.append(text)
                    yield text_event(text)
                    await self.pacer.pause(turn.speed)
                    if is_disconnected is not None and await is_disconnected():
                        log.info("turn.cancelled", forwarded_chars=sum(map(len, reply)))
                        return
        except (asyncio.CancelledError, GeneratorExit):
            log.info("turn.cancelled", forwarded_chars=sum(map(len, reply)))
            raise
        except UpstreamFailureError:
            log.exception("turn.failed")
            raise
        except Exception as e:
            log.exception("turn.failed")
            raise UpstreamFailureError(self.model_client.name, str(e)) from e
        finally:
            await self._close_upstream(upstream)

        full_reply = "".join(reply)
        if full_reply and turn.can_persist:
            message_id = await self._record_assistant_message(turn, full_reply)
            if message_id:
                yield message_id_event(message_id)

        log.info("turn.completed", reply_chars=len(full_reply))
        yield end_event()

    async def _record_assistant_message(self, turn: PreparedTurn, content: str) -> Optional[str]:
        session = self.database.get_session()
        try:
            message = await self.conversation_service.create_message(
                turn.conversation_id,
                turn.user_id,
                MessageRole.ASSISTANT.value,
                content,
                db_session=session,
            )
            self._invalidate_reads()
            return message.id
        except Exception:
            logger.exception(
                "turn.assistant_message_failed",
                user_id=turn.user_id,
                conversation_id=turn.conversation_id,
            )
            return None
        finally:
            await session.close()

    @staticmethod
    async def _close_upstream(upstream: UpstreamStream) -> None:
        try:
            await upstream.aclose()
        except Exception:
            logger.warning("turn.upstream_close_failed", exc_info=True)

    def _invalidate_reads(self) -> None:
        if self.request_cache is not None:
            self.request_cache.clear()
