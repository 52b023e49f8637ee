"""Check users, channels, memberships and messages; flag misconfigured bots."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal
from models import Channel, ChannelMember, Message, User
from model_backend import parse_model_kind
from errors import InvalidModel

db = SessionLocal()

print("=== USERS ===")
humans = db.query(User).filter(User.is_bot == False).count()  # noqa: E712
bots = db.query(User).filter(User.is_bot == True).order_by(User.id.asc()).all()  # noqa: E712
print(f"Humans: {humans} | Bots: {len(bots)}")
for b in bots:
    problems = []
    if not (b.system_prompt or "").strip():
        problems.append("no system prompt")
    try:
        parse_model_kind(b.model)
    except InvalidModel:
        problems.append(f"bad model {b.model!r}")
    status = "OK" if not problems else "MISCONFIGURED: " + ", ".join(problems)
    print(f"  id={b.id} | {b.name} | model={b.model} | {status}")

print("\n=== CHANNELS ===")
for c in db.query(Channel).order_by(Channel.id.asc()).all():
    members = db.query(ChannelMember).filter(ChannelMember.channel_id == c.id).count()
    messages = db.query(Message).filter(Message.channel_id == c.id).count()
    kind = "group" if c.is_group else "dm"
    print(f"  id={c.id} | {kind} | name={c.name} | members={members} | messages={messages}")
    if not c.is_group and members != 2:
        print(f"  [WARNING] direct channel {c.id} has {members} members (expected 2)")

db.close()
