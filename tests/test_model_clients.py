import json

import httpx
import pytest

from api.shared.exceptions import UpstreamFailureError
from core.settings import ModelSettings
from infra.model_clients import (
    DataStreamClient,
    ImageAttachment,
    ModelPrompt,
    OpenAIStreamClient,
    build_model_client,
)

IMAGE = ImageAttachment(data=b"abc", media_type="image/jpeg", filename="x.jpg")


def data_stream_settings(**overrides) -> ModelSettings:
    values = dict(
        MODEL_PROVIDER="data_stream",
        MODEL_API_KEY="secret",
        MODEL_BASE_URL="http://model.test/chat",
        MODEL_NAME="test-model",
    )
    values.update(overrides)
    return ModelSettings(**values)


def test_provider_selection():
    assert isinstance(build_model_client(data_stream_settings()), DataStreamClient)
    assert isinstance(
        build_model_client(ModelSettings(MODEL_PROVIDER="openai", MODEL_API_KEY="k")),
        OpenAIStreamClient,
    )


def test_missing_key_is_not_configured():
    assert not OpenAIStreamClient(ModelSettings(MODEL_API_KEY="")).is_configured
    assert not DataStreamClient(data_stream_settings(MODEL_BASE_URL="")).is_configured
    assert DataStreamClient(data_stream_settings()).is_configured


def test_openai_message_carries_text_and_image():
    client = OpenAIStreamClient(ModelSettings(MODEL_API_KEY="k", MODEL_SYSTEM_PROMPT="be brief"))
    messages = client.build_messages(ModelPrompt(text="what is this?", image=IMAGE))
    assert messages[0] == {"role": "system", "content": "be brief"}
    content = messages[1]["content"]
    assert content[0] == {"type": "text", "text": "what is this?"}
    assert content[1]["image_url"]["url"] == "data:image/jpeg;base64,YWJj"


async def test_data_stream_yields_lines():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b'0:"Hi"\n\ne:{"finishReason":"stop"}\n')

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = DataStreamClient(data_stream_settings(), http_client=http)

    upstream = await client.open_stream(ModelPrompt(text="hello", image=IMAGE))
    lines = [line async for line in upstream]
    await upstream.aclose()
    await http.aclose()

    assert lines == ['0:"Hi"', 'e:{"finishReason":"stop"}']
    assert upstream.framed
    assert seen["auth"] == "Bearer secret"
    parts = seen["body"]["messages"][0]["content"]
    assert parts[1] == {"type": "image", "image": "YWJj", "mimeType": "image/jpeg"}


@pytest.mark.parametrize("status", [401, 403])
async def test_rejected_credential(status):
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(status)))
    client = DataStreamClient(data_stream_settings(), http_client=http)
    with pytest.raises(UpstreamFailureError, match="credential was rejected"):
        await client.open_stream(ModelPrompt(text="hi"))
    await http.aclose()


async def test_upstream_http_error():
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(502, content=b"bad gateway"))
    )
    client = DataStreamClient(data_stream_settings(), http_client=http)
    with pytest.raises(UpstreamFailureError) as excinfo:
        await client.open_stream(ModelPrompt(text="hi"))
    assert excinfo.value.details["status_code"] == 502
    assert excinfo.value.details["body"] == "bad gateway"
    await http.aclose()
