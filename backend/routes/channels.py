"""Channel, membership and message routes."""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from loguru import logger

from models import Channel, ChannelMember, Message, User
from schemas import (
    ChannelCreate, ChannelResponse, DMCreate,
    MemberAdd, MemberResponse,
    MessageCreate, MessageResponse,
)
from channel_helpers import (
    add_member, create_channel, find_direct_channel, is_member, other_member_name,
)
from errors import RoutingError
from deps import Services, get_db, get_current_user, get_services, http_error

router = APIRouter(prefix="/api/channels", tags=["channels"])


def _channel_response(db: Session, channel: Channel, viewer_id: int) -> ChannelResponse:
    response = ChannelResponse.model_validate(channel)
    if not channel.is_group:
        response.other_user_name = other_member_name(db, channel.id, viewer_id)
    return response


def _require_channel(db: Session, channel_id: int, user_id: int) -> Channel:
    channel = db.query(Channel).filter(Channel.id == channel_id).first()
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")
    if not is_member(db, channel_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this channel")
    return channel


@router.post("", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_group_channel(
    channel_data: ChannelCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not channel_data.name.strip():
        raise HTTPException(status_code=400, detail="Please enter a group name")
    member_ids = [uid for uid in channel_data.member_ids if uid != current_user.id]
    if not member_ids:
        raise HTTPException(status_code=400, detail="Please select at least one member")
    found = db.query(User.id).filter(User.id.in_(member_ids)).count()
    if found != len(set(member_ids)):
        raise HTTPException(status_code=404, detail="Some selected users do not exist")

    channel = create_channel(db, current_user.id, member_ids, name=channel_data.name.strip(), is_group=True)
    logger.info(f"User {current_user.id} created group channel {channel.id} with {len(set(member_ids)) + 1} members")
    return _channel_response(db, channel, current_user.id)


@router.post("/dm", response_model=ChannelResponse)
async def open_direct_channel(
    dm_data: DMCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if dm_data.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot open a direct message with yourself")
    other = db.query(User).filter(User.id == dm_data.user_id).first()
    if not other:
        raise HTTPException(status_code=404, detail="User not found")

    channel = find_direct_channel(db, current_user.id, other.id)
    if channel is None:
        channel = create_channel(db, current_user.id, [other.id], name=None, is_group=False)
        logger.info(f"Opened direct channel {channel.id} between {current_user.id} and {other.id}")
    return _channel_response(db, channel, current_user.id)


@router.get("", response_model=List[ChannelResponse])
async def list_my_channels(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    channels = (
        db.query(Channel)
        .join(ChannelMember, ChannelMember.channel_id == Channel.id)
        .filter(ChannelMember.user_id == current_user.id)
        .order_by(Channel.created_at.desc(), Channel.id.desc())
        .all()
    )
    return [_channel_response(db, c, current_user.id) for c in channels]


@router.get("/{channel_id}", response_model=ChannelResponse)
async def get_channel(
    channel_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    channel = _require_channel(db, channel_id, current_user.id)
    return _channel_response(db, channel, current_user.id)


@router.get("/{channel_id}/members", response_model=List[MemberResponse])
async def list_members(
    channel_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_channel(db, channel_id, current_user.id)
    rows = (
        db.query(ChannelMember, User)
        .join(User, User.id == ChannelMember.user_id)
        .filter(ChannelMember.channel_id == channel_id)
        .order_by(ChannelMember.id.asc())
        .all()
    )
    return [
        MemberResponse(membership_id=m.id, user_id=u.id, name=u.name, is_bot=u.is_bot)
        for m, u in rows
    ]


@router.post("/{channel_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_channel_member(
    channel_id: int,
    member_data: MemberAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    channel = _require_channel(db, channel_id, current_user.id)
    if not channel.is_group:
        raise HTTPException(status_code=400, detail="Direct messages always have exactly two members")
    user = db.query(User).filter(User.id == member_data.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    membership = add_member(db, channel_id, user.id)
    return MemberResponse(membership_id=membership.id, user_id=user.id, name=user.name, is_bot=user.is_bot)


@router.delete("/{channel_id}/members/{user_id}", response_model=dict)
async def remove_channel_member(
    channel_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    channel = _require_channel(db, channel_id, current_user.id)
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot remove yourself from the channel")
    if not channel.is_group:
        raise HTTPException(status_code=400, detail="Direct messages always have exactly two members")
    membership = db.query(ChannelMember).filter(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    ).first()
    if not membership:
        raise HTTPException(status_code=404, detail="Member not found")
    db.delete(membership)
    db.commit()
    return {"message": "Member removed", "user_id": user_id}


@router.get("/{channel_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    channel_id: int,
    limit: int = 200,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_channel(db, channel_id, current_user.id)
    rows = (
        db.query(Message, User)
        .join(User, User.id == Message.sender_id)
        .filter(Message.channel_id == channel_id)
        .order_by(Message.id.desc())
        .limit(max(1, min(1000, limit)))
        .all()
    )
    return [
        MessageResponse(
            id=m.id,
            channel_id=m.channel_id,
            sender_id=m.sender_id,
            content=m.content,
            created_at=m.created_at,
            sender_name=u.name,
            sender_is_bot=u.is_bot,
        )
        for m, u in reversed(rows)
    ]


@router.post("/{channel_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    channel_id: int,
    message_data: MessageCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Persist a human message, then route it to bots after the response is sent."""
    content = message_data.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    try:
        channel = await services.store.get_channel(channel_id)
        if channel is None:
            raise HTTPException(status_code=404, detail="Channel not found")
        record = await services.store.insert_message(channel_id, current_user.id, content)
    except RoutingError as exc:
        raise http_error(exc)

    background_tasks.add_task(services.controller.route_message, record)
    return MessageResponse(**record.model_dump())
