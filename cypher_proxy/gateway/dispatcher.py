"""
Execution Dispatcher — runs a NormalizedRequest against one Neo4j session.

Two paths, first match wins:

- batch: every statement of the list, strictly in order, no parameters,
  stopping at the first failure; only a count is returned.
- single: one statement with its parameters; all records are returned.

The session is opened only after validation and is always closed,
whatever the outcome.
"""

from dataclasses import dataclass
from typing import Any, Union

from langfuse import observe
from neo4j import AsyncResult, AsyncSession, Query

from cypher_proxy.gateway.normalizer import NormalizedRequest
from cypher_proxy.shared.database import Neo4jHandler
from cypher_proxy.shared.exceptions import (
    ExecutionError,
    InfrastructureError,
    ValidationError,
)
from cypher_proxy.shared.logging import setup_logging

logger = setup_logging("gateway.dispatcher", level="INFO")

DRIVER_UNAVAILABLE_MESSAGE = "Server Error: Neo4j driver is not available."


# ─── Outcomes ───────────────────────────────────────────────


@dataclass(frozen=True)
class SingleOutcome:
    """Records of a single statement, in database order."""

    records: list[dict[str, Any]]


@dataclass(frozen=True)
class BatchOutcome:
    """Number of batch statements executed."""

    count: int


ExecutionOutcome = Union[SingleOutcome, BatchOutcome]


@dataclass
class ExecutionContext:
    """What is running right now; read when a statement fails."""

    correlation_id: str = "-"
    statement: str | None = None
    parameters: dict[str, Any] | None = None
    executed: int = 0

    def begin(self, statement: str, parameters: dict[str, Any] | None = None) -> None:
        self.statement = statement
        self.parameters = parameters

    def fail(self, error: Exception) -> ExecutionError:
        """Build the ExecutionError for the statement in progress."""
        details = getattr(error, "message", None) or str(error)
        return ExecutionError(
            failed_statement=self.statement or "",
            details=details,
            parameters=self.parameters,
        )


# ─── Dispatcher ─────────────────────────────────────────────


class QueryDispatcher:
    """
    Chooses and runs the batch or single execution path.

    The connection handler is injected so tests can pass a fake one;
    ``None`` means the driver could not be created at startup.
    """

    def __init__(
        self,
        handler: Neo4jHandler | None,
        statement_timeout: float | None = None,
    ):
        self._handler = handler
        self._statement_timeout = statement_timeout

    @property
    def handler(self) -> Neo4jHandler | None:
        return self._handler

    async def dispatch(
        self, request: NormalizedRequest, correlation_id: str = "-"
    ) -> ExecutionOutcome:
        """Execute ``request`` and return its outcome.

        Raises:
            InfrastructureError: No driver, or no session could be opened.
            ValidationError: Neither a batch nor a statement to run.
            ExecutionError: A statement failed; carries its text.
        """
        if self._handler is None:
            logger.error(f"[{correlation_id}] Neo4j driver is not available")
            raise InfrastructureError(DRIVER_UNAVAILABLE_MESSAGE)

        if not request.is_batch and request.statement is None:
            raise ValidationError("Invalid request format")

        session = self._open_session(correlation_id)
        context = ExecutionContext(correlation_id=correlation_id)

        async with session:
            if request.is_batch:
                outcome = await self._run_batch(session, request.statements, context)
            else:
                outcome = await self._run_single(
                    session, request.statement, request.parameters, context
                )

        logger.debug(f"[{correlation_id}] Neo4j session closed")
        return outcome

    def _open_session(self, correlation_id: str) -> AsyncSession:
        try:
            return self._handler.session()
        except Exception as e:
            logger.error(f"[{correlation_id}] Could not open Neo4j session: {e}")
            raise InfrastructureError(DRIVER_UNAVAILABLE_MESSAGE) from e

    def _query(self, statement: str) -> str | Query:
        if self._statement_timeout:
            return Query(statement, timeout=self._statement_timeout)
        return statement

    # ─── Batch Path ─────────────────────────────────────────

    @observe(name="execute_batch", as_type="span", capture_input=False)
    async def _run_batch(
        self,
        session: AsyncSession,
        statements: tuple[str, ...],
        context: ExecutionContext,
    ) -> BatchOutcome:
        """Run every statement in order; the next one starts only after
        the previous result has been fully consumed."""
        logger.info(
            f"[{context.correlation_id}] Executing batch of {len(statements)} statements"
        )

        for statement in statements:
            context.begin(statement)
            try:
                result: AsyncResult = await session.run(self._query(statement))
                await result.consume()
            except Exception as e:
                logger.error(
                    f"[{context.correlation_id}] Batch stopped at statement "
                    f"{context.executed + 1}/{len(statements)}: {statement!r}: {e}"
                )
                raise context.fail(e) from e
            context.executed += 1

        logger.info(f"[{context.correlation_id}] Batch executed successfully")
        return BatchOutcome(count=context.executed)

    # ─── Single Path ────────────────────────────────────────

    @observe(name="execute_statement", as_type="span", capture_input=False)
    async def _run_single(
        self,
        session: AsyncSession,
        statement: str,
        parameters: dict[str, Any],
        context: ExecutionContext,
    ) -> SingleOutcome:
        """Run one statement with its parameters and flatten every record."""
        context.begin(statement, parameters)
        logger.info(f"[{context.correlation_id}] Executing Cypher statement")

        try:
            result: AsyncResult = await session.run(self._query(statement), parameters)
            records = [record.data() async for record in result]
        except Exception as e:
            logger.error(
                f"[{context.correlation_id}] Error executing Cypher: "
                f"statement={statement!r} parameters={parameters!r} error={e}"
            )
            raise context.fail(e) from e

        context.executed = 1
        logger.info(
            f"[{context.correlation_id}] Cypher statement returned {len(records)} records"
        )
        return SingleOutcome(records=records)
