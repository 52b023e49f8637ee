"""Shared FastAPI dependencies used across route modules.

Store, model backend and routing controller are built once by
:func:`build_services` and hung on ``app.state.services``; routes receive
them through the getters below instead of module-level singletons.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from auth import get_current_user_factory
from config import RoutingSettings, get_settings
from errors import RoutingError
from events import MessageEventBus
from model_backend import ModelBackend
from orchestrator import OrchestratorDecisionUnit
from reply_generator import BotReplyGenerator
from routing import RoutingController
from store import ChatStore


@dataclass
class Services:
    session_factory: Callable[[], Session]
    settings: RoutingSettings
    store: ChatStore
    backend: ModelBackend
    orchestrator: OrchestratorDecisionUnit
    generator: BotReplyGenerator
    controller: RoutingController


def build_services(
    session_factory: Callable[[], Session],
    backend: ModelBackend,
    settings: Optional[RoutingSettings] = None,
    events: Optional[MessageEventBus] = None,
    telemetry_path=None,
) -> Services:
    settings = settings or get_settings()
    store = ChatStore(session_factory, events)
    orchestrator = OrchestratorDecisionUnit(backend, settings)
    generator = BotReplyGenerator(store, backend, settings)
    controller = RoutingController(
        store,
        backend,
        settings,
        orchestrator=orchestrator,
        generator=generator,
        telemetry_path=telemetry_path,
    )
    return Services(
        session_factory=session_factory,
        settings=settings,
        store=store,
        backend=backend,
        orchestrator=orchestrator,
        generator=generator,
        controller=controller,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db(request: Request):
    db = get_services(request).session_factory()
    try:
        yield db
    finally:
        db.close()


def http_error(exc: RoutingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


get_current_user = get_current_user_factory(get_db)
