"""Frame parser for upstream model output.

Upstream chunks come in one of two shapes: provider data-stream frames
(``0:"text"`` for content, ``e:{...}`` / ``d:{...}`` for metadata), or plain
text deltas. The parser turns every chunk into a list of tagged frames so the
relay never has to look at the wire format itself.
"""
import json
import re
from dataclasses import dataclass
from typing import List, Literal, Union

CONTENT_TAG = "0"
METADATA_TAGS = ("e", "d")

_FRAME_RE = re.compile(r"^(?P<tag>[0ed]):(?P<payload>.*)$", re.DOTALL)
_CONTENT_RE = re.compile(r'^\s*"(?P<body>.*)"\s*$', re.DOTALL)


@dataclass(frozen=True)
class ContentFrame:
    text: str
    kind: Literal["content"] = "content"


@dataclass(frozen=True)
class MetadataFrame:
    tag: str
    payload: str
    kind: Literal["metadata"] = "metadata"


@dataclass(frozen=True)
class RawFrame:
    text: str
    kind: Literal["raw"] = "raw"


Frame = Union[ContentFrame, MetadataFrame, RawFrame]


def unquote_content(payload: str) -> str:
    """Decode the quoted string of a content frame.

    JSON string rules first (handles ``\\n``, ``\\"`` and unicode escapes);
    falls back to stripping the surrounding quotes.
    """
    try:
        decoded = json.loads(payload)
    except ValueError:
        decoded = None
    if isinstance(decoded, str):
        return decoded
    match = _CONTENT_RE.match(payload)
    return match.group("body") if match else payload


def _parse_line(line: str) -> Frame | None:
    match = _FRAME_RE.match(line)
    if match is None:
        return None
    tag, payload = match.group("tag"), match.group("payload")
    if tag == CONTENT_TAG:
        if _CONTENT_RE.match(payload) is None:
            return None
        return ContentFrame(unquote_content(payload.strip()))
    return MetadataFrame(tag=tag, payload=payload)


def parse_chunk(chunk: str) -> List[Frame]:
    """Classify one upstream chunk.

    A chunk made only of newline-separated protocol frames yields one frame
    per line; any other non-empty chunk is passed through as a single raw
    frame, unchanged. Empty chunks yield nothing.
    """
    if not chunk:
        return []

    lines = [line for line in chunk.splitlines() if line.strip()]
    if not lines:
        return [RawFrame(chunk)]

    frames: List[Frame] = []
    for line in lines:
        frame = _parse_line(line.strip())
        if frame is None:
            return [RawFrame(chunk)]
        frames.append(frame)
    return frames


def forwardable_text(frame: Frame) -> str | None:
    """Text the relay forwards and accumulates, or ``None`` for metadata."""
    if isinstance(frame, MetadataFrame):
        return None
    return frame.text
