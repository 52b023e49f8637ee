"""Store operations the routing engine consumes.

Every call opens its own session and runs in a worker thread, so concurrent
routing passes never share a session. Lookups return ``None`` for not-found;
database failures surface as :class:`errors.StoreUnavailable`.
"""

import asyncio
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StoreUnavailable, Unauthorized
from events import MessageCreated, MessageEventBus
from models import Channel, ChannelMember, Message, User
from schemas import ChannelRecord, MemberRecord, MessageRecord, UserRecord


def _message_record(msg: Message, sender: Optional[User]) -> MessageRecord:
    return MessageRecord(
        id=msg.id,
        channel_id=msg.channel_id,
        sender_id=msg.sender_id,
        content=msg.content,
        created_at=msg.created_at,
        sender_name=sender.name if sender else "",
        sender_is_bot=bool(sender.is_bot) if sender else False,
    )


class ChatStore:
    def __init__(self, session_factory: Callable[[], Session], events: Optional[MessageEventBus] = None):
        self._session_factory = session_factory
        self.events = events or MessageEventBus()

    async def _run(self, fn, *args):
        return await asyncio.to_thread(self._guarded, fn, *args)

    def _guarded(self, fn, *args):
        try:
            with self._session_factory() as db:
                return fn(db, *args)
        except SQLAlchemyError as exc:
            logger.warning(f"Store operation {fn.__name__} failed: {exc}")
            raise StoreUnavailable(str(exc)[:200]) from exc

    # -- reads -------------------------------------------------------------

    async def get_channel(self, channel_id: int) -> Optional[ChannelRecord]:
        return await self._run(self._get_channel, channel_id)

    @staticmethod
    def _get_channel(db: Session, channel_id: int) -> Optional[ChannelRecord]:
        channel = db.query(Channel).filter(Channel.id == channel_id).first()
        return ChannelRecord.model_validate(channel) if channel else None

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        return await self._run(self._get_user, user_id)

    @staticmethod
    def _get_user(db: Session, user_id: int) -> Optional[UserRecord]:
        user = db.query(User).filter(User.id == user_id).first()
        return UserRecord.model_validate(user) if user else None

    async def get_members_with_users(self, channel_id: int) -> list[MemberRecord]:
        return await self._run(self._get_members_with_users, channel_id)

    @staticmethod
    def _get_members_with_users(db: Session, channel_id: int) -> list[MemberRecord]:
        rows = (
            db.query(ChannelMember, User)
            .join(User, User.id == ChannelMember.user_id)
            .filter(ChannelMember.channel_id == channel_id)
            .order_by(ChannelMember.id.asc())
            .all()
        )
        return [
            MemberRecord(membership_id=m.id, user=UserRecord.model_validate(u))
            for m, u in rows
        ]

    async def is_member(self, channel_id: int, user_id: int) -> bool:
        return await self._run(self._is_member, channel_id, user_id)

    @staticmethod
    def _is_member(db: Session, channel_id: int, user_id: int) -> bool:
        return (
            db.query(ChannelMember.id)
            .filter(ChannelMember.channel_id == channel_id, ChannelMember.user_id == user_id)
            .first()
            is not None
        )

    async def get_recent_messages(
        self, channel_id: int, limit: int, before_id: Optional[int] = None
    ) -> list[MessageRecord]:
        """Up to *limit* messages older than *before_id*, oldest first."""
        return await self._run(self._get_recent_messages, channel_id, limit, before_id)

    @staticmethod
    def _get_recent_messages(
        db: Session, channel_id: int, limit: int, before_id: Optional[int]
    ) -> list[MessageRecord]:
        if limit <= 0:
            return []
        query = (
            db.query(Message, User)
            .outerjoin(User, User.id == Message.sender_id)
            .filter(Message.channel_id == channel_id)
        )
        if before_id is not None:
            query = query.filter(Message.id < before_id)
        rows = query.order_by(Message.id.desc()).limit(limit).all()
        return [_message_record(m, u) for m, u in reversed(rows)]

    # -- writes ------------------------------------------------------------

    async def insert_message(self, channel_id: int, sender_id: int, content: str) -> MessageRecord:
        """Append a message and publish it; the sender must be a channel member."""
        record = await self._run(self._insert_message, channel_id, sender_id, content)
        self.events.publish(
            MessageCreated(
                message_id=record.id,
                channel_id=record.channel_id,
                sender_id=record.sender_id,
                content=record.content,
                sender_is_bot=record.sender_is_bot,
                created_at=record.created_at,
            )
        )
        return record

    @staticmethod
    def _insert_message(db: Session, channel_id: int, sender_id: int, content: str) -> MessageRecord:
        if not ChatStore._is_member(db, channel_id, sender_id):
            raise Unauthorized(f"User {sender_id} is not a member of channel {channel_id}")
        msg = Message(channel_id=channel_id, sender_id=sender_id, content=content)
        db.add(msg)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(msg)
        sender = db.query(User).filter(User.id == sender_id).first()
        logger.info(f"Inserted message {msg.id} in channel {channel_id} from user {sender_id}")
        return _message_record(msg, sender)
