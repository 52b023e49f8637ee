"""Routing controller: which bots, if any, answer a freshly sent human message.

Decision table, evaluated once per persisted human message:

* direct channel, other member is a bot   -> that bot replies, nothing else runs
* direct channel, other member is human   -> nobody replies
* group channel with ``@name`` mentions   -> every mentioned bot replies, concurrently
* group channel without mentions          -> one orchestrator call; at most one bot replies

Failures inside the pipeline are logged and recorded on the outcome; they
never reach the human who sent the message.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from loguru import logger

from config import RoutingSettings, get_settings
from context_window import build_context, entry_from_message
from errors import RoutingError, StoreUnavailable
from membership import bots_from_members, list_bot_members
from mentions import extract_mentions
from model_backend import ModelBackend
from orchestrator import OrchestratorDecisionUnit
from reply_generator import BotReplyGenerator
from schemas import ContextEntry, MessageRecord, RoutingOutcome
from store import ChatStore
from telemetry import append_routing_telemetry


class RoutingController:
    def __init__(
        self,
        store: ChatStore,
        backend: ModelBackend,
        settings: Optional[RoutingSettings] = None,
        orchestrator: Optional[OrchestratorDecisionUnit] = None,
        generator: Optional[BotReplyGenerator] = None,
        telemetry_path: Optional[Path] = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or OrchestratorDecisionUnit(backend, self.settings)
        self.generator = generator or BotReplyGenerator(store, backend, self.settings)
        self.telemetry_path = telemetry_path

    def _telemetry(self, event: str, payload: dict) -> None:
        append_routing_telemetry(event, payload, path=self.telemetry_path)

    async def route_message(self, message: MessageRecord) -> RoutingOutcome:
        # Filled in place by _route, so a crash still reports what already happened.
        outcome = RoutingOutcome(path="none", message_id=message.id)
        try:
            await self._route(message, outcome)
        except Exception as exc:
            logger.exception(f"Routing crashed for message {message.id} on path {outcome.path}: {exc}")
        self._telemetry(
            f"route_{outcome.path}",
            {
                "channel_id": message.channel_id,
                "message_id": message.id,
                "bot_ids": outcome.bot_ids,
                "replies": outcome.reply_message_ids,
                "failures": {str(k): v for k, v in outcome.failures.items()},
            },
        )
        return outcome

    async def _route(self, message: MessageRecord, outcome: RoutingOutcome) -> RoutingOutcome:
        if message.sender_is_bot:
            logger.debug(f"Message {message.id} was sent by a bot; not routed")
            return outcome

        try:
            channel = await self.store.get_channel(message.channel_id)
        except StoreUnavailable:
            return outcome
        if channel is None:
            logger.warning(f"Channel {message.channel_id} not found while routing message {message.id}")
            return outcome

        if not channel.is_group:
            return await self._route_direct(message, outcome)
        return await self._route_group(message, outcome)

    async def _route_direct(self, message: MessageRecord, outcome: RoutingOutcome) -> RoutingOutcome:
        try:
            members = await self.store.get_members_with_users(message.channel_id)
        except StoreUnavailable:
            return outcome
        others = [m for m in members if m.user.id != message.sender_id]
        if not others or not others[0].user.is_bot:
            logger.debug(f"Direct channel {message.channel_id} has no bot peer")
            return outcome

        bot = bots_from_members(others[:1])[0]
        outcome.path = "direct"
        outcome.bot_ids = [bot.id]
        context = await self._context(message)
        await self._invoke([bot.id], message.channel_id, context, outcome)
        return outcome

    async def _route_group(self, message: MessageRecord, outcome: RoutingOutcome) -> RoutingOutcome:
        roster = await list_bot_members(self.store, message.channel_id)
        mentioned = extract_mentions(message.content, roster)

        if mentioned:
            outcome.path = "mention"
            outcome.bot_ids = mentioned
            context = await self._context(message)
            await self._invoke(mentioned, message.channel_id, context, outcome)
            return outcome

        if not self.settings.orchestrator_enabled:
            return outcome

        outcome.path = "orchestrator"
        context = await self._context(message)
        decision = await self.orchestrator.decide(
            message.channel_id, entry_from_message(message), context, roster
        )
        outcome.decision = decision
        if decision.should_respond and decision.bot_id is not None:
            outcome.bot_ids = [decision.bot_id]
            await self._invoke([decision.bot_id], message.channel_id, context, outcome)
        return outcome

    async def _context(self, message: MessageRecord) -> list[ContextEntry]:
        return await build_context(
            self.store, message.channel_id, message, self.settings.context_window_size
        )

    async def _invoke(
        self,
        bot_ids: list[int],
        channel_id: int,
        context: list[ContextEntry],
        outcome: RoutingOutcome,
    ) -> None:
        """Run one reply generation per bot; failures are isolated per bot."""
        results = await asyncio.gather(
            *(self.generator.generate_reply(bot_id, channel_id, context) for bot_id in bot_ids),
            return_exceptions=True,
        )
        for bot_id, result in zip(bot_ids, results):
            if isinstance(result, RoutingError):
                outcome.failures[bot_id] = f"{type(result).__name__}: {result.detail}"
                logger.error(f"Bot {bot_id} reply failed in channel {channel_id}: {outcome.failures[bot_id]}")
                self._telemetry("reply_failed", {"bot_id": bot_id, "channel_id": channel_id, "error": outcome.failures[bot_id]})
            elif isinstance(result, Exception):
                outcome.failures[bot_id] = f"{type(result).__name__}: {result}"
                logger.opt(exception=result).error(f"Bot {bot_id} reply crashed in channel {channel_id}")
                self._telemetry("reply_failed", {"bot_id": bot_id, "channel_id": channel_id, "error": outcome.failures[bot_id]})
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome.reply_message_ids.append(result.id)
                self._telemetry("reply_ok", {"bot_id": bot_id, "channel_id": channel_id, "message_id": result.id})
