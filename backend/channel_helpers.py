"""Channel and membership helpers shared by channel routes."""

from typing import Optional

from sqlalchemy.orm import Session

from models import Channel, ChannelMember, User


def is_member(db: Session, channel_id: int, user_id: int) -> bool:
    return db.query(ChannelMember.id).filter(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    ).first() is not None


def find_direct_channel(db: Session, user_id: int, other_user_id: int) -> Optional[Channel]:
    """The existing 1:1 channel between two users, if any."""
    channel_ids = [
        row.channel_id
        for row in db.query(ChannelMember.channel_id).filter(ChannelMember.user_id == user_id).all()
    ]
    if not channel_ids:
        return None
    candidates = db.query(Channel).filter(
        Channel.id.in_(channel_ids),
        Channel.is_group == False,  # noqa: E712
    ).order_by(Channel.id.asc()).all()
    for channel in candidates:
        if is_member(db, channel.id, other_user_id):
            return channel
    return None


def create_channel(
    db: Session,
    creator_id: int,
    member_ids: list[int],
    name: Optional[str] = None,
    is_group: bool = True,
) -> Channel:
    """Create a channel whose members are the creator plus *member_ids* (deduplicated)."""
    channel = Channel(name=name, is_group=is_group, created_by=creator_id)
    db.add(channel)
    db.flush()

    seen: set[int] = set()
    for user_id in [creator_id, *member_ids]:
        if user_id in seen:
            continue
        seen.add(user_id)
        db.add(ChannelMember(channel_id=channel.id, user_id=user_id))

    db.commit()
    db.refresh(channel)
    return channel


def add_member(db: Session, channel_id: int, user_id: int) -> ChannelMember:
    existing = db.query(ChannelMember).filter(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    ).first()
    if existing:
        return existing
    membership = ChannelMember(channel_id=channel_id, user_id=user_id)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def other_member_name(db: Session, channel_id: int, user_id: int) -> Optional[str]:
    row = (
        db.query(User.name)
        .join(ChannelMember, ChannelMember.user_id == User.id)
        .filter(ChannelMember.channel_id == channel_id, User.id != user_id)
        .first()
    )
    return row.name if row else None
