"""Bot reply generation: one model call, one persisted message."""

import asyncio
from typing import Optional

from loguru import logger

from config import RoutingSettings, get_settings
from errors import BotNotConfigured, BotNotFound, GenerationFailed, Unauthorized
from model_backend import ModelBackend, parse_model_kind
from schemas import BotProfile, ContextEntry, MessageRecord
from store import ChatStore

EMPTY_REPLY_FALLBACK = "Sorry, I could not generate a response."
REPLY_NUDGE = "Respond naturally as part of this conversation."


def context_to_turns(bot_name: str, context: list[ContextEntry]) -> list[dict]:
    """Map the context window onto chat turns from the bot's point of view."""
    turns: list[dict] = []
    for entry in context:
        if entry.is_bot and entry.sender_name == bot_name:
            turns.append({"role": "assistant", "content": entry.content})
        else:
            turns.append({"role": "user", "content": f"{entry.sender_name}: {entry.content}"})
    if turns and turns[-1]["role"] == "user":
        turns[-1] = {"role": "user", "content": f"{turns[-1]['content']}\n\n{REPLY_NUDGE}"}
    return turns


class BotReplyGenerator:
    def __init__(
        self,
        store: ChatStore,
        backend: ModelBackend,
        settings: Optional[RoutingSettings] = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.settings = settings or get_settings()

    async def resolve_bot(self, bot_id: int) -> BotProfile:
        user = await self.store.get_user(bot_id)
        if user is None or not user.is_bot:
            raise BotNotFound(f"Bot {bot_id} not found")
        bot = BotProfile(id=user.id, name=user.name, system_prompt=user.system_prompt, model=user.model)
        if not bot.is_configured:
            raise BotNotConfigured(f"Bot {bot.name!r} is missing a system prompt or model")
        return bot

    async def generate_reply(self, bot_id: int, channel_id: int, context: list[ContextEntry]) -> MessageRecord:
        """Generate and persist exactly one reply from *bot_id*.

        Raises BotNotFound, BotNotConfigured/InvalidModel, Unauthorized,
        GenerationFailed or StoreUnavailable. Nothing is inserted on failure.
        """
        bot = await self.resolve_bot(bot_id)
        model = parse_model_kind(bot.model)
        if not await self.store.is_member(channel_id, bot.id):
            raise Unauthorized(f"Bot {bot.name!r} is not a member of channel {channel_id}")

        turns = context_to_turns(bot.name, context)
        logger.info(f"Generating reply from {bot.name} ({model.value}) in channel {channel_id}")
        try:
            text = await asyncio.wait_for(
                self.backend.complete(
                    model=model,
                    system_instruction=bot.system_prompt,
                    messages=turns,
                    temperature=self.settings.reply_temperature,
                ),
                timeout=self.settings.model_timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationFailed(f"{bot.name} timed out after {self.settings.model_timeout_sec}s") from exc
        except GenerationFailed:
            raise
        except Exception as exc:
            raise GenerationFailed(f"{bot.name} backend error: {exc}") from exc

        content = (text or "").strip() or EMPTY_REPLY_FALLBACK
        return await self.store.insert_message(channel_id=channel_id, sender_id=bot.id, content=content)
