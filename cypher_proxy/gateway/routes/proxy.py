"""
Proxy route — POST /api/proxy.

Credential gate → normalizer → dispatcher → formatter. Every error on
the way is a ProxyError, turned into JSON by the app's exception handler.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cypher_proxy.gateway.auth import require_api_key
from cypher_proxy.gateway.config import GatewaySettings, get_settings
from cypher_proxy.gateway.dispatcher import QueryDispatcher
from cypher_proxy.gateway.normalizer import normalize, parse_body
from cypher_proxy.gateway.responses import format_outcome
from cypher_proxy.shared.exceptions import PayloadTooLargeError
from cypher_proxy.shared.logging import generate_correlation_id, setup_logging

logger = setup_logging("gateway.routes.proxy", level="INFO")

router = APIRouter()


def get_dispatcher(request: Request) -> QueryDispatcher:
    """Return the dispatcher built at startup.

    Falls back to a dispatcher without a handler, which answers every
    call with the driver-unavailable error.
    """
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        return QueryDispatcher(None)
    return dispatcher


async def read_body(request: Request, limit: int) -> bytes:
    """Read the raw body, enforcing ``limit`` bytes when positive."""
    declared = request.headers.get("content-length")
    if limit > 0 and declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(f"Request body exceeds {limit} bytes")

    body = await request.body()
    if limit > 0 and len(body) > limit:
        raise PayloadTooLargeError(f"Request body exceeds {limit} bytes")
    return body


# ─── POST /api/proxy ────────────────────────────────────────


@router.post("/proxy", dependencies=[Depends(require_api_key)])
async def proxy(
    request: Request,
    dispatcher: QueryDispatcher = Depends(get_dispatcher),
    settings: GatewaySettings = Depends(get_settings),
) -> JSONResponse:
    """Execute one Cypher statement or a batch of them.

    Body: ``{statement?, statements?, parameters?}``.

    - ``statements`` (list or ';'-delimited string) runs as a batch and
      returns ``{success, message, count}``.
    - otherwise ``statement`` runs once with ``parameters`` and returns
      the list of records.
    """
    correlation_id = generate_correlation_id()

    raw = await read_body(request, settings.max_body_bytes)
    logger.debug(f"[{correlation_id}] Request body: {raw[:2048]!r}")

    body = parse_body(raw)
    normalized = normalize(body, max_batch_size=settings.max_batch_size)

    logger.info(
        f"[{correlation_id}] New proxy request: "
        + (
            f"batch of {len(normalized.statements)} statements"
            if normalized.is_batch
            else f"single statement with {len(normalized.parameters)} parameters"
        )
    )

    outcome = await dispatcher.dispatch(normalized, correlation_id=correlation_id)
    return format_outcome(outcome)
