from datetime import datetime, timedelta, timezone
from typing import Optional, Callable
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import env_int, env_str
from models import User

# JWT settings
SECRET_KEY = env_str("JWT_SECRET_KEY", "your-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 30 * 24 * 60, 5, 365 * 24 * 60)

security = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def token_for_user(user: User) -> str:
    return create_access_token(data={"sub": user.email, "user_id": user.id})


def verify_token(token: str):
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def _credentials_error(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_factory(get_db_func: Callable):
    """get_current_user dependency factory"""
    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db_func)
    ) -> User:
        payload = verify_token(credentials.credentials)
        if payload is None:
            raise _credentials_error()

        email = payload.get("sub")
        user_id = payload.get("user_id")
        if email is None or user_id is None:
            raise _credentials_error()

        user = db.query(User).filter(User.id == user_id).first()
        if user is None or user.is_bot:
            raise _credentials_error("User not found")
        return user

    return get_current_user
