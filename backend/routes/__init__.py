from .users import router as users_router
from .bots import router as bots_router
from .channels import router as channels_router
from .engine import router as engine_router

__all__ = ["users_router", "bots_router", "channels_router", "engine_router"]
