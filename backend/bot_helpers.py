"""Bot creation helpers shared by routes and seed scripts."""

import time

from sqlalchemy.orm import Session

from models import User
from bot_configs import BOT_EMAIL_DOMAIN, build_system_prompt
from model_backend import parse_model_kind
from text_utils import email_slug


def create_bot_user(db: Session, name: str, persona: str, model: str) -> User:
    """Insert a bot participant; raises InvalidModel for unknown model kinds."""
    kind = parse_model_kind(model)

    base_email = f"{email_slug(name)}_{int(time.time() * 1000)}"
    email = f"{base_email}@{BOT_EMAIL_DOMAIN}"
    counter = 1
    while db.query(User).filter(User.email == email).first():
        email = f"{base_email}_{counter}@{BOT_EMAIL_DOMAIN}"
        counter += 1

    bot = User(
        email=email,
        name=name.strip(),
        is_bot=True,
        system_prompt=build_system_prompt(persona),
        model=kind.value,
        profile_picture=None,
    )
    db.add(bot)
    db.commit()
    db.refresh(bot)
    return bot
