"""Bounded conversation slice handed to every model call."""

from loguru import logger

from errors import StoreUnavailable
from schemas import ContextEntry, MessageRecord
from store import ChatStore

DEFAULT_WINDOW_SIZE = 10


def entry_from_message(msg: MessageRecord) -> ContextEntry:
    return ContextEntry(sender_name=msg.sender_name, content=msg.content, is_bot=msg.sender_is_bot)


def bound_context(entries: list[ContextEntry], window_size: int = DEFAULT_WINDOW_SIZE) -> list[ContextEntry]:
    """Keep the newest ``window_size + 1`` entries (prior turns plus the new one)."""
    keep = max(0, window_size) + 1
    return list(entries[-keep:])


def render_transcript(entries: list[ContextEntry], mark_bots: bool = True) -> str:
    lines = []
    for entry in entries:
        label = entry.sender_name
        if mark_bots and entry.is_bot:
            label += " (AI Bot)"
        lines.append(f"{label}: {entry.content}")
    return "\n".join(lines)


async def build_context(
    store: ChatStore,
    channel_id: int,
    new_message: MessageRecord,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> list[ContextEntry]:
    """The ``window_size`` messages before *new_message*, oldest first, then *new_message*."""
    try:
        prior = await store.get_recent_messages(channel_id, window_size, before_id=new_message.id)
    except StoreUnavailable as exc:
        logger.warning(f"Recent messages unavailable for channel {channel_id}: {exc.detail}")
        prior = []
    entries = [entry_from_message(m) for m in prior[-window_size:]] if window_size > 0 else []
    entries.append(entry_from_message(new_message))
    return entries
