"""
Credential gate — shared-secret check on the x-api-key header.

Runs as a FastAPI dependency, before the request body is read.
"""

import hmac

from fastapi import Depends, Header

from cypher_proxy.gateway.config import GatewaySettings, get_settings
from cypher_proxy.shared.exceptions import AuthError
from cypher_proxy.shared.logging import setup_logging

logger = setup_logging("gateway.auth", level="INFO")

API_KEY_HEADER = "x-api-key"


def check_api_key(provided: str | None, expected: str) -> bool:
    """Return True when ``provided`` matches the configured secret.

    An empty configured secret never matches, so a deployment without
    API_KEY rejects every call instead of accepting every call.
    """
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
    x_api_key: str | None = Header(None, alias=API_KEY_HEADER),
    settings: GatewaySettings = Depends(get_settings),
) -> None:
    """Dependency that rejects the request with 403 on a bad key."""
    if not check_api_key(x_api_key, settings.api_key):
        if not settings.api_key:
            logger.warning("API key check failed: API_KEY is not configured")
        else:
            logger.warning(
                "API key check failed: header %s",
                "missing" if not x_api_key else "mismatch",
            )
        raise AuthError()
    logger.debug("API key check passed")
