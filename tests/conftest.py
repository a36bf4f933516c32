import os

# Settings are read at import time; point them at test values first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MODEL_API_KEY"] = "test-key"
os.environ["JSON_LOGS"] = "false"
os.environ["DB_AUTO_CREATE"] = "true"

from typing import List, Optional

import httpx
import pytest
from dependency_injector import providers

from api.features.chat.pacing import Pacer
from api.features.chat.service import ChatRelayService
from api.features.conversation.service import ConversationService
from api.features.users.service import UserService
from api.shared.cache import RequestCoalescer
from api.shared.entities.registry import BaseEntity
from infra.model_clients import ModelPrompt
from infra.resources import DatabaseResource


class FakeUpstream:
    def __init__(self, chunks: List[str], fail_after: Optional[int] = None, framed: bool = False):
        self.chunks = chunks
        self.framed = framed
        self.fail_after = fail_after
        self.closed = False

    async def __aiter__(self):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("upstream connection reset")
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeModelClient:
    name = "fake"

    def __init__(self):
        self.configured = True
        self.chunks: List[str] = ["Hel", "lo"]
        self.framed = False
        self.fail_after: Optional[int] = None
        self.open_error: Optional[Exception] = None
        self.prompts: List[ModelPrompt] = []
        self.upstreams: List[FakeUpstream] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def open_stream(self, prompt: ModelPrompt) -> FakeUpstream:
        self.prompts.append(prompt)
        if self.open_error is not None:
            raise self.open_error
        upstream = FakeUpstream(list(self.chunks), self.fail_after, self.framed)
        self.upstreams.append(upstream)
        return upstream


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
async def database(tmp_path):
    db = DatabaseResource(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    await db.init()
    await db.create_all(BaseEntity)
    yield db
    await db.shutdown()


@pytest.fixture
async def db_session(database):
    session = database.get_session()
    yield session
    await session.close()


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def pacer(sleeps):
    return Pacer(sleep=sleeps)


@pytest.fixture
def request_cache():
    return RequestCoalescer(window_ms=500, ttl_seconds=60)


@pytest.fixture
def relay_service(database, model_client, pacer, request_cache):
    return ChatRelayService(
        database=database,
        model_client=model_client,
        pacer=pacer,
        conversation_service=ConversationService(),
        user_service=UserService(),
        request_cache=request_cache,
    )


@pytest.fixture
async def client(database, model_client, pacer, request_cache):
    from api.main import app

    infrastructure = app.container.infrastructure
    infrastructure.database.override(providers.Object(database))
    infrastructure.model_client.override(providers.Object(model_client))
    infrastructure.pacer.override(providers.Object(pacer))
    infrastructure.request_cache.override(providers.Object(request_cache))
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http
    finally:
        infrastructure.database.reset_override()
        infrastructure.model_client.reset_override()
        infrastructure.pacer.reset_override()
        infrastructure.request_cache.reset_override()


@pytest.fixture
async def alice(db_session):
    return await UserService().get_or_create_user("alice", db_session=db_session)


@pytest.fixture
async def bob(db_session):
    return await UserService().get_or_create_user("bob", db_session=db_session)
