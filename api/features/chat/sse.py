"""Server-sent event framing for the relay stream."""
import json
from typing import Any, Dict, Optional

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # nginx would otherwise buffer the whole reply
    "X-Accel-Buffering": "no",
}


def sse_event(payload: Dict[str, Any], event: Optional[str] = None) -> str:
    data = json.dumps(payload, ensure_ascii=False)
    if event:
        return f"event: {event}\ndata: {data}\n\n"
    return f"data: {data}\n\n"


def text_event(text: str) -> str:
    return sse_event({"text": text})


def message_id_event(message_id: str) -> str:
    return sse_event({"messageId": message_id})


def end_event() -> str:
    return sse_event({}, event="end")
