"""Engine RPC routes: orchestrator decision, direct reply generation, telemetry."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from models import User
from schemas import ContextEntry, OrchestratorRequest, ReplyRequest, ReplyResponse
from context_window import bound_context
from membership import list_bot_members
from errors import RoutingError, Unauthorized
from telemetry import read_routing_telemetry_summary
from deps import Services, get_current_user, get_services

router = APIRouter(prefix="/api", tags=["engine"])


async def _caller_membership_error(services: Services, channel_id: int, user: User) -> Optional[RoutingError]:
    """The caller must belong to the channel the engine acts on."""
    try:
        if await services.store.is_member(channel_id, user.id):
            return None
    except RoutingError as exc:
        return exc
    return Unauthorized(f"User {user.id} is not a member of channel {channel_id}")


@router.post("/ai-orchestrator")
async def ai_orchestrator(
    request: OrchestratorRequest,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Decide whether any bot should answer; always carries a safe ``shouldRespond``."""
    denied = await _caller_membership_error(services, request.channel_id, current_user)
    if denied is not None:
        return JSONResponse(status_code=denied.status_code, content={"shouldRespond": False, "error": denied.detail})

    try:
        roster = await list_bot_members(services.store, request.channel_id)
        new_entry = ContextEntry(
            sender_name=request.new_message.sender_name,
            content=request.new_message.content,
        )
        context = bound_context(request.recent_messages, services.settings.context_window_size)
        decision = await services.orchestrator.decide(request.channel_id, new_entry, context, roster)
    except Exception as exc:
        logger.exception(f"Orchestrator endpoint failed: {exc}")
        return JSONResponse(status_code=500, content={"shouldRespond": False, "error": str(exc)})
    return decision.model_dump(by_alias=True, exclude_none=True)


@router.post("/ai-reply", response_model=ReplyResponse, response_model_exclude_none=True)
async def ai_reply(
    request: ReplyRequest,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    denied = await _caller_membership_error(services, request.channel_id, current_user)
    if denied is not None:
        return JSONResponse(status_code=denied.status_code, content={"success": False, "error": denied.detail})

    context = list(request.recent_messages)
    if not context or context[-1].content != request.message_content:
        context.append(ContextEntry(sender_name="User", content=request.message_content))
    context = bound_context(context, services.settings.context_window_size)

    try:
        message = await services.generator.generate_reply(request.bot_id, request.channel_id, context)
    except RoutingError as exc:
        logger.warning(f"AI reply for bot {request.bot_id} failed: {type(exc).__name__}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})
    return ReplyResponse(success=True, response=message.content, message_id=message.id)


@router.get("/routing/telemetry")
async def routing_telemetry(hours: int = 24, limit: int = 6, services: Services = Depends(get_services)):
    return read_routing_telemetry_summary(hours=hours, limit=limit, path=services.controller.telemetry_path)
