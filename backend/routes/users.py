"""User registration, login and directory routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from models import User
from schemas import UserCreate, UserLogin, UserResponse
from auth import token_for_user
from deps import get_db, get_current_user

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: Session = Depends(get_db)):
    email = user_data.email.strip().lower()
    if not email or not user_data.name.strip():
        raise HTTPException(status_code=400, detail="Email and name are required")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    db_user = User(
        email=email,
        name=user_data.name.strip(),
        profile_picture=user_data.profile_picture,
        is_bot=False,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return {
        **UserResponse.model_validate(db_user).model_dump(),
        "access_token": token_for_user(db_user),
        "token_type": "bearer",
    }


@router.post("/login", response_model=dict)
async def login_user(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(
        User.email == credentials.email.strip().lower(),
        User.is_bot == False,  # noqa: E712
    ).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "access_token": token_for_user(user),
        "token_type": "bearer",
        "user": UserResponse.model_validate(user).model_dump(),
    }


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.get("", response_model=List[UserResponse])
async def list_users(
    include_bots: bool = True,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Everyone except the caller, humans first (as the DM picker lists them)."""
    query = db.query(User).filter(User.id != current_user.id)
    if not include_bots:
        query = query.filter(User.is_bot == False)  # noqa: E712
    users = query.order_by(User.is_bot.asc(), User.name.asc()).all()
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)
