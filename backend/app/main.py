"""FastAPI application for the dynamic table agent."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router, client_router
from .api.errors import register_error_handlers
from .core.config import AppSettings, get_settings
from .core.db import dispose_engine
from .core.logging import get_logger, setup_logging

logger = get_logger(__name__)

_LANGSMITH_ENV = {
    "langsmith_api_key": "LANGCHAIN_API_KEY",
    "langsmith_endpoint": "LANGCHAIN_ENDPOINT",
    "langsmith_project": "LANGCHAIN_PROJECT",
}


def _configure_tracing(settings: AppSettings) -> None:
    """Export LangSmith settings for the traced agent run, when enabled."""

    if not settings.enable_tracing:
        return

    for field, variable in _LANGSMITH_ENV.items():
        value = getattr(settings, field)
        if value:
            os.environ.setdefault(variable, value)

    if os.environ.get("LANGCHAIN_API_KEY"):
        os.environ.setdefault("LANGCHAIN_TRACING_V2", "true")


def _check_agent_configuration(settings: AppSettings) -> None:
    # Health endpoints stay up without a key; /chat answers 500 until one is set.
    if not settings.openai_api_key:
        logger.warning("application.agent.unconfigured", reason="OPENAI_API_KEY is not set", model=settings.llm_model)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging()
    _configure_tracing(settings)
    _check_agent_configuration(settings)

    logger.info(
        "application.startup",
        environment=settings.environment,
        model=settings.llm_model,
        atomic_updates=settings.atomic_updates,
        max_steps=settings.agent_max_steps,
    )
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("application.shutdown")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the API: versioned routes under ``/v1`` plus the client's ``/chat``."""

    settings = settings or get_settings()

    application = FastAPI(title=settings.project_name, version=settings.version, lifespan=lifespan)

    if settings.cors_allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    register_error_handlers(application)
    application.include_router(api_router, prefix="/v1")
    application.include_router(client_router, include_in_schema=False)

    @application.get("/", tags=["meta"], summary="Service metadata")
    async def root() -> dict[str, str]:
        return {"service": settings.project_name, "version": settings.version}

    return application


app = create_app()
