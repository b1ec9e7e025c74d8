"""
Response Formatter — maps dispatcher outcomes and proxy errors to JSON.
"""

import math
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from neo4j.spatial import Point

from cypher_proxy.gateway.dispatcher import BatchOutcome, ExecutionOutcome, SingleOutcome
from cypher_proxy.shared.exceptions import ProxyError
from cypher_proxy.shared.logging import setup_logging

logger = setup_logging("gateway.responses", level="INFO")


def encode_value(value: Any) -> Any:
    """Convert one driver value into something JSON can carry.

    - NaN and ±Infinity become ``None`` (JSON has no such numbers).
    - Temporal values, durations included, become ISO-8601 strings.
    - Spatial points and any other unknown value fall back to ``str``.
    - Byte arrays become lists of ints.

    Duration and Point subclass ``tuple``, so they are checked before
    the list branch.
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if hasattr(value, "iso_format"):
        return value.iso_format()
    if isinstance(value, Point):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    if isinstance(value, dict):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return str(value)


def encode_records(records: list[dict]) -> list[dict]:
    """Make flattened records JSON-safe, keeping field and row order."""
    return [encode_value(record) for record in records]


def format_outcome(outcome: ExecutionOutcome) -> JSONResponse:
    """Build the 200 response for a successful dispatch."""
    if isinstance(outcome, BatchOutcome):
        return JSONResponse(
            status_code=200,
            content={
                "success": True,
                "message": f"Batch of {outcome.count} statements executed successfully.",
                "count": outcome.count,
            },
        )
    if isinstance(outcome, SingleOutcome):
        return JSONResponse(status_code=200, content=encode_records(outcome.records))
    raise TypeError(f"Unknown execution outcome: {type(outcome).__name__}")


def format_error(error: ProxyError) -> JSONResponse:
    """Build the error response for any ProxyError."""
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    """FastAPI exception handler registered for ProxyError."""
    logger.info(
        f"{request.method} {request.url.path} -> {exc.status_code} "
        f"{type(exc).__name__}: {exc.message}"
    )
    return format_error(exc)
