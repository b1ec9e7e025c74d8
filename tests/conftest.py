"""
Shared fixtures: an in-memory stand-in for the Neo4j handler and an
HTTP client wired to the gateway with dependency overrides.
"""

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from neo4j import Query

from cypher_proxy.gateway.app import app
from cypher_proxy.gateway.config import GatewaySettings, get_settings
from cypher_proxy.gateway.dispatcher import QueryDispatcher
from cypher_proxy.gateway.routes.proxy import get_dispatcher

API_KEY = "test-secret"


# ─── Fake Driver ─────────────────────────────────────────────


class FakeCypherError(Exception):
    """Driver error carrying a server message, like neo4j.Neo4jError."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FakeRecord:
    def __init__(self, values: dict[str, Any]):
        self._values = values

    def data(self) -> dict[str, Any]:
        return dict(self._values)


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self.consumed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for row in self._rows:
            yield FakeRecord(row)

    async def consume(self):
        self.consumed = True


class FakeSession:
    """Records every run() call; answers from the handler's script."""

    def __init__(self, handler: "FakeHandler"):
        self._handler = handler
        self.calls: list[tuple[Any, dict[str, Any] | None]] = []
        self.close_count = 0

    async def run(self, query, parameters=None):
        self.calls.append((query, parameters))
        text = query.text if isinstance(query, Query) else query
        if text in self._handler.failures:
            raise self._handler.failures[text]
        return FakeResult(self._handler.responses.get(text, []))

    async def close(self):
        self.close_count += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def statements(self) -> list[str]:
        return [q.text if isinstance(q, Query) else q for q, _ in self.calls]


class FakeHandler:
    """Stand-in for Neo4jHandler: scripted results and failures per statement."""

    def __init__(
        self,
        responses: dict[str, list[dict[str, Any]]] | None = None,
        failures: dict[str, Exception] | None = None,
        reachable: bool = True,
    ):
        self.responses = responses or {}
        self.failures = failures or {}
        self.reachable = reachable
        self.sessions: list[FakeSession] = []

    def session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    async def verify(self) -> bool:
        return self.reachable

    async def close(self) -> None:
        pass


# ─── Fixtures ────────────────────────────────────────────────


@pytest.fixture
def fake_handler():
    return FakeHandler(
        responses={
            "RETURN 1 AS x": [{"x": 1}],
            "MATCH (n) RETURN n": [{"n": {"name": "a"}}, {"n": {"name": "b"}}],
            "MATCH (p:Person {name: $name}) RETURN p.name AS name": [{"name": "Ada"}],
        },
        failures={"INVALID CYPHER": FakeCypherError("Invalid input 'INVALID'")},
    )


@pytest.fixture
def settings():
    return GatewaySettings(api_key=API_KEY, max_batch_size=5, max_body_bytes=4096)


@pytest.fixture
def auth_headers():
    return {"x-api-key": API_KEY}


@pytest_asyncio.fixture
async def client(fake_handler, settings):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_dispatcher] = lambda: QueryDispatcher(fake_handler)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
