"""Explicit @name addressing of bots."""

from schemas import BotProfile


def mention_token(name: str) -> str:
    return f"@{name}"


def extract_mentions(text: str, roster: list[BotProfile]) -> list[int]:
    """Ids of roster bots whose ``@name`` occurs in *text*, in roster order.

    Plain case-sensitive substring match: ``@Al`` also fires inside
    ``@Alice``. Each bot id appears at most once.
    """
    content = text or ""
    if "@" not in content:
        return []
    mentioned: list[int] = []
    for bot in roster:
        if not bot.name or bot.id in mentioned:
            continue
        if mention_token(bot.name) in content:
            mentioned.append(bot.id)
    return mentioned
