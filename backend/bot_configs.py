"""
Bot persona defaults: model choices and the brevity guidance appended to every prompt.
"""

from model_backend import BOT_MODEL_LABELS, DEFAULT_BOT_MODEL, ModelKind

BOT_EMAIL_DOMAIN = "ai.bot"

RESPONSE_LENGTH_GUIDANCE = (
    "IMPORTANT: Keep responses slightly short, one sentence max like someone would "
    "in a casual chat, unless you clearly need to write more (such as when a long "
    "answer is required to explain something properly or when explicitly asked for details)."
)


def build_system_prompt(persona: str) -> str:
    """Stored system instruction for a new bot: persona plus length guidance."""
    return f"{persona.strip()}\n\n{RESPONSE_LENGTH_GUIDANCE}"


def get_model_choices() -> list[dict]:
    return [
        {"value": kind.value, "label": label, "default": kind is DEFAULT_BOT_MODEL}
        for kind, label in BOT_MODEL_LABELS.items()
    ]


def get_bot_model_kinds() -> list[str]:
    return [kind.value for kind in ModelKind if kind in BOT_MODEL_LABELS]
