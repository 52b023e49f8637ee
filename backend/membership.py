"""Bot roster of a channel."""

from loguru import logger

from errors import StoreUnavailable
from schemas import BotProfile, MemberRecord
from store import ChatStore


def bots_from_members(members: list[MemberRecord]) -> list[BotProfile]:
    return [
        BotProfile(
            id=m.user.id,
            name=m.user.name,
            system_prompt=m.user.system_prompt,
            model=m.user.model,
        )
        for m in members
        if m.user.is_bot
    ]


async def list_bot_members(store: ChatStore, channel_id: int) -> list[BotProfile]:
    """Every bot currently in *channel_id*, in membership order.

    An unreachable store yields an empty roster, never an error.
    """
    try:
        members = await store.get_members_with_users(channel_id)
    except StoreUnavailable as exc:
        logger.warning(f"Bot roster unavailable for channel {channel_id}: {exc.detail}")
        return []
    return bots_from_members(members)
