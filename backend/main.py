import sys

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import env_int, env_str, get_settings
from database import SessionLocal, engine, Base
from deps import build_services
from model_backend import OpenRouterBackend
from routes import users_router, bots_router, channels_router, engine_router


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), backtrace=False, diagnose=False)


configure_logging(env_str("LOG_LEVEL", "INFO"))

# Create database tables
Base.metadata.create_all(bind=engine)


app = FastAPI(
    title="Bot Chat API",
    description="Multi-user chat with AI bot participants",
    version="1.0.0",
)

# Store, model backend and routing controller, wired once for the process.
app.state.services = build_services(SessionLocal, OpenRouterBackend(), get_settings())

# CORS settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users_router)
app.include_router(bots_router)
app.include_router(channels_router)
app.include_router(engine_router)


@app.middleware("http")
async def utf8_charset_middleware(request: Request, call_next):
    response = await call_next(request)
    ct = response.headers.get("content-type", "")
    if "application/json" in ct and "charset" not in ct:
        response.headers["content-type"] = ct + "; charset=utf-8"
    return response


@app.get("/")
async def root():
    return {
        "message": "Bot Chat API - multi-user chat with AI participants",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=env_str("HOST", "0.0.0.0"),
        port=env_int("PORT", 8000, 1, 65535),
        reload=False,
    )
