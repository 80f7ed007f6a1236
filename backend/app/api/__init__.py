"""API routers for the backend service."""

from fastapi import APIRouter

from .routes import health_router
from .v1 import chat

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(chat.router, prefix="", tags=["chat"])

# The browser chat client posts to ``/chat`` without a version prefix.
client_router = APIRouter()
client_router.include_router(chat.router, prefix="", tags=["chat"])

__all__ = ["api_router", "client_router"]
