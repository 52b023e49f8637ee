"""Orchestrator: decides whether an un-mentioned group message deserves a bot reply.

The classification call is best-effort. Every failure (timeout, backend
error, malformed JSON, unknown bot) degrades to ``shouldRespond: false``.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from config import RoutingSettings, get_settings
from context_window import render_transcript
from errors import ClassificationMalformed
from model_backend import ModelBackend, ModelKind
from schemas import BotProfile, ContextEntry, RoutingDecision
from text_utils import extract_json_object, truncate

# -----------------------------------------------------------------------
# Prompt templates
# -----------------------------------------------------------------------

_ORCHESTRATOR_SYSTEM = (
    "You are a JSON-only response bot. "
    "Always respond with valid JSON only, no additional text."
)

_ORCHESTRATOR_RULES = (
    "Only say yes if:\n"
    "1. The message is a question or request that matches a bot's expertise\n"
    "2. Someone is directly talking to or about a specific bot by name or role\n"
    "3. The conversation thread is already actively engaging with a bot\n"
    "\n"
    "DO NOT respond if:\n"
    "- It's casual human-to-human conversation or banter\n"
    "- It's a greeting, acknowledgment, or social chat\n"
    "- The message doesn't need AI input"
)

_ORCHESTRATOR_PROMPT = (
    "You are an AI conversation orchestrator. Your job is to analyze a chat "
    "conversation and decide which AI bot (if any) should respond to the latest message.\n\n"
    "IMPORTANT: Be conservative. NOT every message needs a bot response. "
    "Let humans talk naturally without AI interruption unless the AI is actually needed.\n\n"
    "Available AI bots in this channel:\n{bot_list}\n\n"
    "Recent conversation history:\n{history}\n\n"
    "Latest message:\n{latest}\n\n"
    "Analyze the conversation and determine if ANY bot should respond. {rules}\n\n"
    "Respond with ONLY a JSON object in this exact format:\n"
    '{{"shouldRespond": true or false, "botName": "exact bot name" or null, '
    '"reasoning": "brief explanation"}}\n\n'
    "If no bot should respond (which should be most of the time), use: "
    '{{"shouldRespond": false, "botName": null, "reasoning": "explanation"}}'
)

_SHOULD_RESPOND_KEYS = ("shouldRespond", "shouldResponse", "should_respond")


def no_response(reasoning: Optional[str] = None) -> RoutingDecision:
    return RoutingDecision(should_respond=False, reasoning=reasoning)


def parse_decision(text: str, roster: list[BotProfile]) -> RoutingDecision:
    """Turn classifier output into a decision bound to a roster bot.

    Raises ClassificationMalformed when the output does not fit the schema.
    A well-formed answer naming a bot outside *roster* is a no-response.
    """
    obj = extract_json_object(text)
    if obj is None:
        raise ClassificationMalformed(f"not a JSON object: {truncate(text or '', 120)!r}")

    key = next((k for k in _SHOULD_RESPOND_KEYS if k in obj), None)
    if key is None or not isinstance(obj[key], bool):
        raise ClassificationMalformed("missing boolean shouldRespond")
    bot_name = obj.get("botName")
    if bot_name is not None and not isinstance(bot_name, str):
        raise ClassificationMalformed("botName must be a string or null")
    reasoning = obj.get("reasoning")
    reasoning = str(reasoning) if reasoning is not None else None

    if not obj[key] or not bot_name:
        return no_response(reasoning)

    selected = next((b for b in roster if b.name == bot_name), None)
    if selected is None:
        logger.warning(f"Orchestrator picked unknown bot {bot_name!r}")
        return no_response(reasoning)
    return RoutingDecision(
        should_respond=True,
        bot_id=selected.id,
        bot_name=selected.name,
        reasoning=reasoning,
    )


class OrchestratorDecisionUnit:
    """Single lightweight classification call per un-mentioned group message."""

    def __init__(self, backend: ModelBackend, settings: Optional[RoutingSettings] = None) -> None:
        self.backend = backend
        self.settings = settings or get_settings()

    def build_prompt(
        self,
        new_message: ContextEntry,
        context: list[ContextEntry],
        roster: list[BotProfile],
    ) -> str:
        limit = self.settings.persona_summary_chars
        bot_list = "\n".join(
            f"- {b.name}: {truncate(b.system_prompt or '', limit)}" for b in roster
        )
        history = list(context)
        if history and history[-1].content == new_message.content and history[-1].sender_name == new_message.sender_name:
            history = history[:-1]
        return _ORCHESTRATOR_PROMPT.format(
            bot_list=bot_list,
            history=render_transcript(history) or "(no earlier messages)",
            latest=f"{new_message.sender_name}: {new_message.content}",
            rules=_ORCHESTRATOR_RULES,
        )

    async def decide(
        self,
        channel_id: int,
        new_message: ContextEntry,
        context: list[ContextEntry],
        roster: list[BotProfile],
    ) -> RoutingDecision:
        candidates = [b for b in roster if b.is_configured]
        if not candidates:
            logger.debug(f"Orchestrator: no configured bots in channel {channel_id}, skipping model call")
            return no_response("no bots in channel")

        prompt = self.build_prompt(new_message, context, candidates)
        try:
            raw = await asyncio.wait_for(
                self.backend.complete(
                    model=ModelKind.ROUTER,
                    system_instruction=_ORCHESTRATOR_SYSTEM,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.settings.orchestrator_temperature,
                ),
                timeout=self.settings.model_timeout_sec,
            )
            decision = parse_decision(raw, candidates)
        except asyncio.TimeoutError:
            logger.warning(f"Orchestrator timed out for channel {channel_id}")
            return no_response("classification timed out")
        except ClassificationMalformed as exc:
            logger.warning(f"Orchestrator output malformed for channel {channel_id}: {exc.detail}")
            return no_response("classification malformed")
        except Exception as exc:
            logger.warning(f"Orchestrator failed for channel {channel_id}: {exc}")
            return no_response("classification failed")

        logger.debug(
            f"Orchestrator decision for channel {channel_id}: "
            f"respond={decision.should_respond} bot={decision.bot_name} ({decision.reasoning})"
        )
        return decision
