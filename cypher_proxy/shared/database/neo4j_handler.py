"""
Neo4j Connection Handler

Centralised Neo4j driver management.
Reads credentials from environment variables and owns the single async
driver shared by every request; each request opens its own session.
"""

import os
import logging

from dotenv import load_dotenv
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession

from cypher_proxy.shared.exceptions import DatabaseConnectionError

load_dotenv()

logger = logging.getLogger("cypher_proxy.neo4j_handler")


class Neo4jHandler:
    """
    Manages a single async Neo4j driver backed by .env configuration.

    Usage
    -----
    handler = Neo4jHandler()          # reads from .env
    await handler.connect()
    async with handler.session() as session:
        result = await session.run("MATCH (n) RETURN n LIMIT 5")
    await handler.close()
    """

    def __init__(
        self,
        uri: str | None = None,
        username: str | None = None,
        password: str | None = None,
        database: str | None = None,
    ):
        self._uri = uri or os.getenv("NEO4J_URI")
        self._username = username or os.getenv("NEO4J_USERNAME")
        self._password = password or os.getenv("NEO4J_PASSWORD")
        self._database = database or os.getenv("NEO4J_DATABASE", "neo4j")
        self._driver: AsyncDriver | None = None

        if not self._uri:
            raise ValueError("NEO4J_URI is not set (env or argument)")
        if not self._username:
            raise ValueError("NEO4J_USERNAME is not set (env or argument)")
        if not self._password:
            raise ValueError("NEO4J_PASSWORD is not set (env or argument)")

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self, verify: bool = True) -> "Neo4jHandler":
        """Create the async driver and, optionally, verify connectivity.

        Args:
            verify: Probe the server before returning. With ``False`` the
                driver connects lazily on the first session.

        Returns:
            Self for method chaining.

        Raises:
            DatabaseConnectionError: If the driver cannot be created or
                (with ``verify``) the server cannot be reached.
        """
        if self._driver is not None:
            return self

        try:
            driver = AsyncGraphDatabase.driver(
                self._uri, auth=(self._username, self._password)
            )
        except Exception as e:
            logger.error("Failed to create Neo4j driver instance: %s", e)
            raise DatabaseConnectionError(f"Invalid Neo4j configuration: {e}") from e

        if verify:
            try:
                await driver.verify_connectivity()
            except Exception as e:
                logger.error("Failed to connect to Neo4j at %s", self._uri)
                await driver.close()
                raise DatabaseConnectionError(
                    f"Neo4j unreachable at {self._uri}: {e}"
                ) from e

        self._driver = driver
        logger.info("Neo4j driver created for %s (db=%s)", self._uri, self._database)
        return self

    async def close(self) -> None:
        """Close the underlying driver."""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    # ─── Properties ─────────────────────────────────────────

    @property
    def driver(self) -> AsyncDriver:
        """Return the raw async driver.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
        """
        if self._driver is None:
            raise RuntimeError("Neo4jHandler is not connected — call connect() first")
        return self._driver

    @property
    def database(self) -> str:
        """Return the configured database name."""
        return self._database

    @property
    def uri(self) -> str:
        """Return the configured Neo4j URI."""
        return self._uri

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    # ─── Sessions ───────────────────────────────────────────

    def session(self) -> AsyncSession:
        """Open a new session on the configured database.

        The caller owns the session and must close it, normally with
        ``async with handler.session() as session:``.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
        """
        return self.driver.session(database=self._database)

    async def verify(self) -> bool:
        """Quick health-check: returns True if the database is reachable."""
        if self._driver is None:
            return False
        try:
            await self._driver.verify_connectivity()
            return True
        except Exception as e:
            logger.warning("Neo4j connectivity check failed: %s", e)
            return False
