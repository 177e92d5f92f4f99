"""
Shared fixtures: in-memory database tables, a stub model invoker and API keys
"""
import asyncio
import os

# Must be set before smartnotes modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from sqlmodel import SQLModel, Session

from smartnotes.services.llm import RawCompletion
from smartnotes.services.providers import ModelRegistry


class StubInvoker:
    """Stands in for ModelInvoker.

    replies is either a callable taking the user prompt or a list consumed in
    call order. A reply that is an exception instance is raised. delays maps a
    substring of the prompt to seconds slept before answering.
    """

    def __init__(self, replies, delays=None):
        self.registry = ModelRegistry()
        self.replies = replies
        self.delays = delays or {}
        self.calls = []
        self.finished = []
        self.cancelled = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def _reply_for(self, user_prompt):
        if callable(self.replies):
            return self.replies(user_prompt)
        return self.replies[len(self.calls) - 1]

    async def invoke(self, model_id, system_prompt, user_prompt, **kwargs):
        self.calls.append({"model_id": model_id, "system_prompt": system_prompt,
                           "user_prompt": user_prompt, **kwargs})
        reply = self._reply_for(user_prompt)
        delay = next((d for marker, d in self.delays.items() if marker in user_prompt), 0)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        self.finished.append(user_prompt)
        if isinstance(reply, Exception):
            raise reply
        return RawCompletion(text=reply, model_id=model_id or "", finish_reason="stop")


@pytest.fixture
def stub_invoker():
    return StubInvoker


@pytest.fixture
def tables():
    from smartnotes.db import engine

    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(tables):
    with Session(tables, expire_on_commit=False) as s:
        yield s


@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY_1", "or-key-1")
    monkeypatch.setenv("OPENROUTER_API_KEY_2", "or-key-2")
    monkeypatch.setenv("NVIDIA_API_KEY", "nv-key")
