"""
Script that seeds a few starter bots (skips names that already exist)
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, engine, Base
from models import User
from bot_helpers import create_bot_user

STARTER_BOTS = [
    {
        "name": "Nova",
        "persona": "You are Nova, a patient programming helper. Answer coding questions with concrete, working suggestions.",
        "model": "claude",
    },
    {
        "name": "Echo",
        "persona": "You are Echo, a friendly writing coach. Help people phrase things clearly and kindly.",
        "model": "gpt",
    },
    {
        "name": "Atlas",
        "persona": "You are Atlas, a travel planner. Suggest routes, budgets and local tips.",
        "model": "gemini",
    },
]

# Create database
Base.metadata.create_all(bind=engine)


def create_starter_bots():
    db = SessionLocal()
    try:
        created = []
        for spec in STARTER_BOTS:
            existing = db.query(User).filter(User.name == spec["name"], User.is_bot == True).first()  # noqa: E712
            if existing:
                print(f"Bot '{spec['name']}' already exists: {existing.email}")
                continue
            bot = create_bot_user(db, spec["name"], spec["persona"], spec["model"])
            created.append(bot)
            print(f"Bot created: {bot.name} ({bot.model}) id={bot.id}")

        print(f"\nTotal {len(created)} bots created")
        return created
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("Bot Chat starter bots")
    print("=" * 50)
    create_starter_bots()
