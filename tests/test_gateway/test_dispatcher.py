"""
Unit tests for QueryDispatcher against the fake handler from conftest.
"""

import logging

import pytest
from neo4j import Query

from cypher_proxy.gateway.dispatcher import (
    BatchOutcome,
    ExecutionContext,
    QueryDispatcher,
    SingleOutcome,
)
from cypher_proxy.gateway.normalizer import NormalizedRequest
from cypher_proxy.shared.exceptions import (
    ExecutionError,
    InfrastructureError,
    ValidationError,
)

from conftest import FakeCypherError, FakeHandler


# ─── Single path ─────────────────────────────────────────────


class TestSinglePath:
    async def test_returns_flattened_records(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        outcome = await dispatcher.dispatch(NormalizedRequest(statement="RETURN 1 AS x"))

        assert outcome == SingleOutcome(records=[{"x": 1}])

    async def test_record_order_preserved(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        outcome = await dispatcher.dispatch(NormalizedRequest(statement="MATCH (n) RETURN n"))

        assert [r["n"]["name"] for r in outcome.records] == ["a", "b"]

    async def test_parameters_passed_to_driver(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)
        statement = "MATCH (p:Person {name: $name}) RETURN p.name AS name"

        outcome = await dispatcher.dispatch(
            NormalizedRequest(statement=statement, parameters={"name": "Ada"})
        )

        assert outcome.records == [{"name": "Ada"}]
        session = fake_handler.sessions[0]
        assert session.calls == [(statement, {"name": "Ada"})]

    async def test_empty_parameters_sent_as_mapping(self, fake_handler):
        await QueryDispatcher(fake_handler).dispatch(NormalizedRequest(statement="RETURN 1 AS x"))

        assert fake_handler.sessions[0].calls == [("RETURN 1 AS x", {})]

    async def test_failure_carries_statement_and_parameters(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        with pytest.raises(ExecutionError) as exc_info:
            await dispatcher.dispatch(
                NormalizedRequest(statement="INVALID CYPHER", parameters={"a": 1})
            )

        error = exc_info.value
        assert error.failed_statement == "INVALID CYPHER"
        assert error.parameters == {"a": 1}
        assert error.details == "Invalid input 'INVALID'"
        assert isinstance(error.__cause__, FakeCypherError)

    async def test_identical_reads_are_repeatable(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)
        request = NormalizedRequest(statement="MATCH (n) RETURN n")

        first = await dispatcher.dispatch(request)
        second = await dispatcher.dispatch(request)

        assert first == second


# ─── Batch path ──────────────────────────────────────────────


class TestBatchPath:
    async def test_runs_in_order_without_parameters(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        outcome = await dispatcher.dispatch(
            NormalizedRequest(statements=("CREATE (a)", "CREATE (b)"), parameters={"x": 1})
        )

        assert outcome == BatchOutcome(count=2)
        session = fake_handler.sessions[0]
        assert session.calls == [("CREATE (a)", None), ("CREATE (b)", None)]

    async def test_batch_takes_priority_over_statement(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        outcome = await dispatcher.dispatch(
            NormalizedRequest(statement="RETURN 1 AS x", statements=("CREATE (a)",))
        )

        assert outcome == BatchOutcome(count=1)
        assert fake_handler.sessions[0].statements == ["CREATE (a)"]

    async def test_stops_at_first_failure(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler)

        with pytest.raises(ExecutionError) as exc_info:
            await dispatcher.dispatch(
                NormalizedRequest(
                    statements=("MATCH (n) RETURN n", "INVALID CYPHER", "CREATE (c)")
                )
            )

        assert exc_info.value.failed_statement == "INVALID CYPHER"
        assert exc_info.value.parameters is None
        assert fake_handler.sessions[0].statements == ["MATCH (n) RETURN n", "INVALID CYPHER"]

    async def test_failure_while_consuming_is_attributed(self):
        class FailingResult:
            async def consume(self):
                raise FakeCypherError("constraint violated")

        handler = FakeHandler()
        dispatcher = QueryDispatcher(handler)
        original_session = handler.session

        def session():
            fake = original_session()

            async def run(query, parameters=None):
                fake.calls.append((query, parameters))
                return FailingResult()

            fake.run = run
            return fake

        handler.session = session

        with pytest.raises(ExecutionError) as exc_info:
            await dispatcher.dispatch(NormalizedRequest(statements=("CREATE (a)", "CREATE (b)")))

        assert exc_info.value.failed_statement == "CREATE (a)"
        assert exc_info.value.details == "constraint violated"
        assert len(handler.sessions[0].calls) == 1


# ─── Session lifecycle ───────────────────────────────────────


class TestSessionLifecycle:
    @pytest.mark.parametrize(
        "request_",
        [
            NormalizedRequest(statement="RETURN 1 AS x"),
            NormalizedRequest(statement="INVALID CYPHER"),
            NormalizedRequest(statements=("CREATE (a)", "CREATE (b)")),
            NormalizedRequest(statements=("CREATE (a)", "INVALID CYPHER")),
        ],
    )
    async def test_session_closed_exactly_once(self, fake_handler, request_):
        dispatcher = QueryDispatcher(fake_handler)

        try:
            await dispatcher.dispatch(request_)
        except ExecutionError:
            pass

        assert len(fake_handler.sessions) == 1
        assert fake_handler.sessions[0].close_count == 1

    async def test_no_handler_is_infrastructure_error(self):
        with pytest.raises(InfrastructureError) as exc_info:
            await QueryDispatcher(None).dispatch(NormalizedRequest(statement="RETURN 1"))

        assert exc_info.value.status_code == 500
        assert "not available" in exc_info.value.message

    async def test_session_open_failure_is_infrastructure_error(self):
        class Disconnected:
            def session(self):
                raise RuntimeError("Neo4jHandler is not connected")

        with pytest.raises(InfrastructureError):
            await QueryDispatcher(Disconnected()).dispatch(NormalizedRequest(statement="RETURN 1"))

    async def test_nothing_to_run_opens_no_session(self, fake_handler):
        with pytest.raises(ValidationError) as exc_info:
            await QueryDispatcher(fake_handler).dispatch(NormalizedRequest())

        assert exc_info.value.message == "Invalid request format"
        assert fake_handler.sessions == []


# ─── Timeout & context ───────────────────────────────────────


class TestStatementTimeout:
    async def test_timeout_wraps_statement_in_query(self, fake_handler):
        dispatcher = QueryDispatcher(fake_handler, statement_timeout=2.5)

        outcome = await dispatcher.dispatch(NormalizedRequest(statement="RETURN 1 AS x"))

        assert outcome.records == [{"x": 1}]
        query, _ = fake_handler.sessions[0].calls[0]
        assert isinstance(query, Query)
        assert query.text == "RETURN 1 AS x"
        assert query.timeout == 2.5


class TestExecutionContext:
    def test_fail_uses_current_statement(self):
        context = ExecutionContext(correlation_id="abc")
        context.begin("CREATE (a)")
        context.begin("CREATE (b)", {"k": "v"})

        error = context.fail(ValueError("boom"))

        assert error.failed_statement == "CREATE (b)"
        assert error.parameters == {"k": "v"}
        assert error.details == "boom"


class TestSessionCloseLogging:
    async def test_close_logged_after_session_released(self, fake_handler, caplog):
        closed_when_logged = []

        class RecordingHandler(logging.Handler):
            def emit(self, record):
                if "session closed" in record.getMessage():
                    closed_when_logged.append(fake_handler.sessions[0].close_count)

        recorder = RecordingHandler(level=logging.DEBUG)
        dispatcher_logger = logging.getLogger("gateway.dispatcher")
        dispatcher_logger.addHandler(recorder)
        caplog.set_level(logging.DEBUG, logger="gateway.dispatcher")
        try:
            await QueryDispatcher(fake_handler).dispatch(
                NormalizedRequest(statement="RETURN 1 AS x")
            )
        finally:
            dispatcher_logger.removeHandler(recorder)

        assert closed_when_logged == [1]
