"""Streaming clients for the upstream language model.

The relay depends on the ``ModelStreamClient`` protocol only. Two adapters
exist: one for OpenAI-compatible chat completions and one for endpoints that
speak the line-based data-stream format (``0:"..."``, ``e:{...}``, ``d:{...}``).
"""
import base64
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

import httpx
from openai import AsyncOpenAI, APIError, AuthenticationError, PermissionDeniedError

from api.shared.exceptions import UpstreamFailureError
from core.settings import ModelSettings

logger = logging.getLogger("chat.model_client")


@dataclass(frozen=True)
class ImageAttachment:
    data: bytes
    media_type: str
    filename: Optional[str] = None

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


@dataclass(frozen=True)
class ModelPrompt:
    """One multimodal user message."""

    text: str
    image: Optional[ImageAttachment] = None


class UpstreamStream(Protocol):
    """Async iterator of decoded text chunks that can be closed early.

    ``framed`` is true when each chunk is a data-stream line (``0:"..."``,
    ``e:{...}``) rather than plain model text.
    """

    framed: bool

    def __aiter__(self) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        ...


class ModelStreamClient(Protocol):
    name: str

    @property
    def is_configured(self) -> bool:
        ...

    async def open_stream(self, prompt: ModelPrompt) -> UpstreamStream:
        """Issue the request and return once the response stream is open."""
        ...


class _OpenAIUpstream:
    framed = False

    def __init__(self, stream: Any):
        self._stream = stream

    async def __aiter__(self) -> AsyncIterator[str]:
        try:
            async for chunk in self._stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is not None and delta.content:
                    yield delta.content
        except APIError as e:
            raise UpstreamFailureError("openai", str(e)) from e

    async def aclose(self) -> None:
        await self._stream.close()


class OpenAIStreamClient:
    """Chat completions with ``stream=True`` through the official SDK."""

    name = "openai"

    def __init__(self, settings: ModelSettings):
        self._settings = settings
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.MODEL_API_KEY.get_secret_value())

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.MODEL_API_KEY.get_secret_value(),
                base_url=self._settings.MODEL_BASE_URL or None,
                timeout=self._settings.MODEL_TIMEOUT_SECONDS,
            )
        return self._client

    def build_messages(self, prompt: ModelPrompt) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt.text}]
        if prompt.image is not None:
            content.append(
                {"type": "image_url", "image_url": {"url": prompt.image.to_data_url()}}
            )
        messages: List[Dict[str, Any]] = []
        if self._settings.MODEL_SYSTEM_PROMPT:
            messages.append({"role": "system", "content": self._settings.MODEL_SYSTEM_PROMPT})
        messages.append({"role": "user", "content": content})
        return messages

    async def open_stream(self, prompt: ModelPrompt) -> UpstreamStream:
        try:
            stream = await self._get_client().chat.completions.create(
                model=self._settings.MODEL_NAME,
                messages=self.build_messages(prompt),
                stream=True,
            )
        except (AuthenticationError, PermissionDeniedError) as e:
            raise UpstreamFailureError(
                self.name, "the configured model credential was rejected"
            ) from e
        except APIError as e:
            raise UpstreamFailureError(self.name, str(e)) from e
        return _OpenAIUpstream(stream)


class _HttpLineUpstream:
    framed = True

    def __init__(self, response: httpx.Response):
        self._response = response

    async def __aiter__(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                if line:
                    yield line
        except httpx.HTTPError as e:
            raise UpstreamFailureError("data_stream", str(e)) from e

    async def aclose(self) -> None:
        await self._response.aclose()


class DataStreamClient:
    """POSTs the prompt to a data-stream endpoint and yields its lines."""

    name = "data_stream"

    def __init__(self, settings: ModelSettings, http_client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._http = http_client

    @property
    def is_configured(self) -> bool:
        return bool(
            self._settings.MODEL_API_KEY.get_secret_value() and self._settings.MODEL_BASE_URL
        )

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._settings.MODEL_TIMEOUT_SECONDS)
        return self._http

    def build_payload(self, prompt: ModelPrompt) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"type": "text", "text": prompt.text}]
        if prompt.image is not None:
            parts.append(
                {
                    "type": "image",
                    "image": prompt.image.to_base64(),
                    "mimeType": prompt.image.media_type,
                }
            )
        payload: Dict[str, Any] = {
            "model": self._settings.MODEL_NAME,
            "messages": [{"role": "user", "content": parts}],
            "stream": True,
        }
        if self._settings.MODEL_SYSTEM_PROMPT:
            payload["system"] = self._settings.MODEL_SYSTEM_PROMPT
        return payload

    async def open_stream(self, prompt: ModelPrompt) -> UpstreamStream:
        http = self._get_http()
        request = http.build_request(
            "POST",
            self._settings.MODEL_BASE_URL,
            json=self.build_payload(prompt),
            headers={
                "Authorization": f"Bearer {self._settings.MODEL_API_KEY.get_secret_value()}",
                "Content-Type": "application/json",
            },
        )
        try:
            response = await http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamFailureError(self.name, str(e)) from e

        if response.status_code in (401, 403):
            await response.aclose()
            raise UpstreamFailureError(
                self.name,
                "the configured model credential was rejected",
                {"status_code": response.status_code},
            )
        if response.status_code >= 400:
            body = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            raise UpstreamFailureError(
                self.name,
                f"HTTP {response.status_code}",
                {"status_code": response.status_code, "body": body[:500]},
            )
        return _HttpLineUpstream(response)


def build_model_client(settings: ModelSettings) -> ModelStreamClient:
    """Pick the adapter named by ``MODEL_PROVIDER``."""
    if settings.MODEL_PROVIDER == "data_stream":
        return DataStreamClient(settings)
    return OpenAIStreamClient(settings)
