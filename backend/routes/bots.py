"""Bot management routes: model choices, create, list."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from models import User
from schemas import BotCreate, BotResponse
from bot_configs import get_model_choices, get_bot_model_kinds
from bot_helpers import create_bot_user
from errors import InvalidModel
from deps import get_db, get_current_user

router = APIRouter(prefix="/api/bots", tags=["bots"])


@router.get("/models")
async def get_bot_models():
    return {"models": get_model_choices()}


@router.post("", response_model=BotResponse, status_code=status.HTTP_201_CREATED)
async def create_bot(
    bot_data: BotCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not bot_data.name.strip():
        raise HTTPException(status_code=400, detail="Please enter an AI name")
    if not bot_data.system_prompt.strip():
        raise HTTPException(status_code=400, detail="Please enter a system prompt")
    try:
        bot = create_bot_user(db, bot_data.name, bot_data.system_prompt, bot_data.model)
    except InvalidModel:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid model type. Valid types: {', '.join(get_bot_model_kinds())}",
        )
    return BotResponse.model_validate(bot)


@router.get("", response_model=List[BotResponse])
async def list_bots(db: Session = Depends(get_db)):
    bots = db.query(User).filter(User.is_bot == True).order_by(User.id.asc()).all()  # noqa: E712
    return [BotResponse.model_validate(b) for b in bots]


@router.get("/{bot_id}", response_model=BotResponse)
async def get_bot(bot_id: int, db: Session = Depends(get_db)):
    bot = db.query(User).filter(User.id == bot_id, User.is_bot == True).first()  # noqa: E712
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    return BotResponse.model_validate(bot)
