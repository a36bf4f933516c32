"""Router for the Chat feature."""
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from api.features.chat.controller import ChatController
from api.features.chat.dtos import ChatTurnRequest
from api.features.chat.pacing import Speed
from di.container import ApplicationContainer as DependencyContainer
from infra.model_clients import ImageAttachment

router = APIRouter()


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


@router.post("")
@inject
async def submit_turn(
    request: Request,
    message: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    topic_id: Optional[str] = Form(None, alias="topicId"),
    conversation_id: Optional[str] = Form(None, alias="conversationId"),
    speed: Optional[str] = Form(None),
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """Submit a chat turn and stream the reply as server-sent events.

    Fields may be sent as multipart/urlencoded form data or as query
    parameters; form values win.
    """
    query = request.query_params

    attachment = None
    if image is not None:
        data = await image.read()
        if data:
            attachment = ImageAttachment(
                data=data,
                media_type=image.content_type or "application/octet-stream",
                filename=image.filename,
            )

    turn_request = ChatTurnRequest(
        message=_first(message, query.get("message")),
        image=attachment,
        user_id=_first(user_id, query.get("userId")),
        conversation_id=_first(
            topic_id, conversation_id, query.get("topicId"), query.get("conversationId")
        ),
        speed=Speed.parse(_first(speed, query.get("speed"))),
    )
    return await controller.start_turn(turn_request, request.is_disconnected)
