from __future__ import annotations

import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep import-time side effects (create_all, telemetry) out of the working tree.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(tempfile.gettempdir()) / 'botchat_import.db'}")
os.environ.setdefault("ROUTING_TELEMETRY_ENABLED", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from config import RoutingSettings  # noqa: E402
from database import Base, make_engine  # noqa: E402
from deps import build_services  # noqa: E402
from events import MessageEventBus  # noqa: E402
from model_backend import ModelBackend, ModelKind  # noqa: E402
from models import Channel, ChannelMember, Message, User  # noqa: E402
from schemas import MessageRecord  # noqa: E402

NO_RESPONSE = '{"shouldRespond": false, "botName": null, "reasoning": "casual chat"}'


class FakeBackend(ModelBackend):
    """Scripted model backend that records every call.

    ``router_reply`` answers classification calls, ``bot_reply`` answers
    everything else. Either may be a string, an exception instance to raise,
    or a callable ``(model, system_instruction, messages) -> str``.
    """

    def __init__(self, router_reply=NO_RESPONSE, bot_reply="Happy to help!", delay: float = 0.0):
        self.router_reply = router_reply
        self.bot_reply = bot_reply
        self.delay = delay
        self.calls: list[dict] = []

    async def complete(self, model, system_instruction, messages, temperature):
        self.calls.append(
            {
                "model": model,
                "system_instruction": system_instruction,
                "messages": messages,
                "temperature": temperature,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.router_reply if model is ModelKind.ROUTER else self.bot_reply
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(model, system_instruction, messages)
        return reply

    @property
    def router_calls(self) -> list[dict]:
        return [c for c in self.calls if c["model"] is ModelKind.ROUTER]

    @property
    def reply_calls(self) -> list[dict]:
        return [c for c in self.calls if c["model"] is not ModelKind.ROUTER]


class Seed:
    """Direct database seeding, bypassing routes and the event bus."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _add(self, obj):
        with self.session_factory() as db:
            db.add(obj)
            db.commit()
            db.refresh(obj)
            db.expunge(obj)
        return obj

    def human(self, name: str) -> User:
        return self._add(User(email=f"{name.lower()}@example.com", name=name, is_bot=False))

    def bot(self, name: str, prompt: str | None = "You are a helpful bot.", model: str | None = "claude") -> User:
        return self._add(
            User(email=f"{name.lower()}@ai.bot", name=name, is_bot=True, system_prompt=prompt, model=model)
        )

    def channel(self, members: list[User], name: str | None = "general", is_group: bool = True) -> Channel:
        channel = self._add(Channel(name=name if is_group else None, is_group=is_group, created_by=members[0].id))
        with self.session_factory() as db:
            for member in members:
                db.add(ChannelMember(channel_id=channel.id, user_id=member.id))
            db.commit()
        return channel

    def dm(self, a: User, b: User) -> Channel:
        return self.channel([a, b], is_group=False)

    def message(self, channel: Channel, sender: User, content: str) -> MessageRecord:
        msg = self._add(Message(channel_id=channel.id, sender_id=sender.id, content=content))
        return MessageRecord(
            id=msg.id,
            channel_id=msg.channel_id,
            sender_id=msg.sender_id,
            content=msg.content,
            created_at=msg.created_at,
            sender_name=sender.name,
            sender_is_bot=sender.is_bot,
        )

    def messages_in(self, channel: Channel) -> list[Message]:
        with self.session_factory() as db:
            rows = db.query(Message).filter(Message.channel_id == channel.id).order_by(Message.id.asc()).all()
            for row in rows:
                db.expunge(row)
            return rows


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    return Seed(session_factory)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings():
    return RoutingSettings(model_timeout_sec=2.0)


@pytest.fixture
def events():
    return MessageEventBus()


@pytest.fixture
def services(session_factory, backend, settings, events, tmp_path):
    return build_services(
        session_factory,
        backend,
        settings,
        events=events,
        telemetry_path=tmp_path / "routing_telemetry.log",
    )


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient
    from main import app

    previous = app.state.services
    app.state.services = services
    with TestClient(app) as test_client:
        yield test_client
    app.state.services = previous
