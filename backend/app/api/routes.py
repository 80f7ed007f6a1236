"""Health and readiness checks."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api import deps
from app.core.logging import get_logger
from app.services.sql import Statement
from app.services.tools import StatementRunner

logger = get_logger(__name__)

health_router = APIRouter()

_PING = Statement("SELECT 1 AS ok")


@health_router.get("/", summary="Liveness check", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Report that the process is serving requests."""

    return {"status": "ok"}


@health_router.get("/db", summary="Database readiness check", tags=["health"])
async def database_healthcheck(executor: StatementRunner = Depends(deps.get_statement_executor)):
    """Round-trip a trivial statement through the shared pool."""

    try:
        await executor.fetch(_PING)
    except SQLAlchemyError as exc:
        logger.warning("health.database.unavailable", error=str(exc))
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"status": "unavailable"})
    return {"status": "ok"}
