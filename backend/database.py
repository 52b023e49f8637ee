from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import env_str

# SQLite by default; any SQLAlchemy URL works (PostgreSQL in production).
SQLALCHEMY_DATABASE_URL = env_str("DATABASE_URL", "sqlite:///./chatbots.db")


def make_engine(url: str):
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
    )


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
