"""
Health routes — GET /api/health and GET /api/health/database.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cypher_proxy.gateway.dispatcher import QueryDispatcher
from cypher_proxy.gateway.routes.proxy import get_dispatcher
from cypher_proxy.shared.logging import setup_logging

logger = setup_logging("gateway.routes.health", level="INFO")

router = APIRouter()

SERVICE_NAME = "Cypher Proxy"
SERVICE_VERSION = "0.1.0"


# ─── Response Models ─────────────────────────────────────────


class DatabaseHealth(BaseModel):
    """Response model for GET /api/health/database."""

    status: str = Field(..., description="Health status: healthy or unhealthy")
    configured: bool = Field(
        ..., description="Whether a Neo4j driver was created at startup"
    )


# ─── GET /api/health/database ───────────────────────────────


@router.get("/health/database", response_model=DatabaseHealth)
async def database_health(
    dispatcher: QueryDispatcher = Depends(get_dispatcher),
) -> DatabaseHealth:
    """Check that Neo4j answers a connectivity probe.

    Does not require the API key and never reveals configuration values.
    """
    handler = dispatcher.handler
    if handler is None:
        logger.warning("Database health check: driver not configured")
        return DatabaseHealth(status="unhealthy", configured=False)

    reachable = await handler.verify()
    return DatabaseHealth(
        status="healthy" if reachable else "unhealthy",
        configured=True,
    )


# ─── GET /api/health (simple health check) ──────────────────


@router.get("/health")
async def simple_health() -> dict:
    """Simple health check endpoint.

    Returns a basic health status without touching the database.
    Useful for load balancers and uptime monitors.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }
