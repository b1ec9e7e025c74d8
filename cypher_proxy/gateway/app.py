"""
FastAPI Gateway — HTTP layer of the Cypher proxy.

Creates the Neo4j driver once at startup and exposes POST /api/proxy,
which runs Cypher statements on behalf of API-key holders.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cypher_proxy.gateway.config import GatewaySettings, get_settings
from cypher_proxy.gateway.dispatcher import QueryDispatcher
from cypher_proxy.gateway.responses import proxy_error_handler
from cypher_proxy.gateway.routes import health, proxy
from cypher_proxy.shared.database import Neo4jHandler
from cypher_proxy.shared.exceptions import DatabaseConnectionError, ProxyError
from cypher_proxy.shared.logging import setup_logging
from cypher_proxy.shared.observability import (
    LangfuseMiddleware,
    init_langfuse,
    is_langfuse_enabled,
    shutdown_langfuse,
)

# Global settings
settings = get_settings()

logger = setup_logging("gateway.app", level=settings.log_level)


def log_settings_presence(settings: GatewaySettings) -> None:
    """Report which required settings are loaded, never their values."""
    for env_name, loaded in settings.settings_presence().items():
        logger.info(f"{env_name} loaded: {loaded}")
    missing = settings.missing_settings()
    if missing:
        logger.warning(f"Missing settings: {', '.join(missing)}")


async def create_dispatcher(settings: GatewaySettings) -> QueryDispatcher:
    """Create the Neo4j driver and wrap it in a dispatcher.

    A driver that cannot be created leaves the dispatcher without a
    handler; startup continues and proxy calls answer 500.
    """
    try:
        handler = Neo4jHandler(
            uri=settings.neo4j_uri or None,
            username=settings.neo4j_username or None,
            password=settings.neo4j_password or None,
            database=settings.neo4j_database or None,
        )
        await handler.connect(verify=False)
    except (ValueError, DatabaseConnectionError) as e:
        logger.error(f"CRITICAL: Failed to create Neo4j driver instance: {e}")
        return QueryDispatcher(None)

    if await handler.verify():
        logger.info("Neo4j is reachable")
    else:
        logger.warning("Neo4j is not reachable yet; statements will fail until it is")

    return QueryDispatcher(handler, statement_timeout=settings.statement_timeout)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI app.

    Creates the Neo4j driver on startup, closes it on shutdown.
    """
    logger.info("Starting Cypher proxy")
    log_settings_presence(settings)

    init_langfuse()
    if is_langfuse_enabled():
        logger.info("Langfuse observability enabled")
    else:
        logger.info("Langfuse observability disabled")

    dispatcher = await create_dispatcher(settings)
    app.state.dispatcher = dispatcher

    logger.info("Gateway initialized successfully")

    yield

    logger.info("Shutting down Cypher proxy")
    if dispatcher.handler is not None:
        await dispatcher.handler.close()
    shutdown_langfuse()
    app.state.dispatcher = None


# Create FastAPI app
app = FastAPI(
    title="Cypher Proxy",
    description="Authenticated HTTP gateway that runs Cypher statements against Neo4j",
    version=health.SERVICE_VERSION,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add Langfuse observability middleware
app.add_middleware(LangfuseMiddleware)

app.add_exception_handler(ProxyError, proxy_error_handler)

# Register routers
app.include_router(proxy.router, prefix="/api", tags=["Proxy"])
app.include_router(health.router, prefix="/api", tags=["Health"])


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with basic info."""
    return {
        "name": health.SERVICE_NAME,
        "version": health.SERVICE_VERSION,
        "status": "operational",
        "endpoints": {
            "proxy": "/api/proxy",
            "health": "/api/health",
            "database_health": "/api/health/database",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cypher_proxy.gateway.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )
