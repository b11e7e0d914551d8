"""Shared fixtures: an in-memory database, fake OpenAI replies and a mocked Kapso API."""

from __future__ import annotations

import json
import os
import tempfile
from types import SimpleNamespace
from typing import Any

# Must be set before anything under ``kebo`` builds its settings and engine.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="kebo-media-"))

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kebo.config import get_settings
from kebo.db import Base


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return get_settings()


def text_reply(content: str) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def tool_reply(name: str, arguments: dict[str, Any] | str, call_id: str = "call_1") -> SimpleNamespace:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    call = SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=raw))
    message = SimpleNamespace(content=None, tool_calls=[call])
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, replies: list[Any]) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeOpenAI:
    """Stands in for ``openai.OpenAI``; replays scripted chat completions."""

    def __init__(self, replies: list[Any], transcription: str | None = None) -> None:
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)
        self.transcription_calls: list[dict[str, Any]] = []
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._transcribe))
        self._transcription = transcription

    def _transcribe(self, **kwargs: Any) -> SimpleNamespace:
        self.transcription_calls.append(kwargs)
        return SimpleNamespace(text=self._transcription or "")


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def replies():
    return SimpleNamespace(text=text_reply, tool=tool_reply)


class KapsoRecorder:
    """httpx handler faking the Kapso messages API and the media CDN."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.history: list[dict[str, Any]] = []
        self.media: dict[str, httpx.Response] = {}

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.method == "POST"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for media_url, response in self.media.items():
            if url.startswith(media_url):
                return response
        if request.url.path.endswith("/messages"):
            if request.method == "POST":
                return httpx.Response(200, json={"messages": [{"id": f"wamid.out.{len(self.requests)}"}]})
            return httpx.Response(200, json={"data": self.history})
        return httpx.Response(404)


@pytest.fixture
def kapso():
    return KapsoRecorder()


@pytest.fixture
def http_client(kapso):
    client = httpx.Client(transport=httpx.MockTransport(kapso))
    yield client
    client.close()
