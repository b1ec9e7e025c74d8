"""
Langfuse observability integration.

Provides tracing for proxy requests.
Only activates when LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY are provided in .env
"""

import os
from typing import Callable, Optional

from fastapi import Request, Response
from langfuse import Langfuse, get_client
from starlette.middleware.base import BaseHTTPMiddleware

from cypher_proxy.shared.logging import setup_logging

logger = setup_logging("shared.observability", level="INFO")

# Headers never copied into a trace
REDACTED_HEADERS = {"x-api-key", "authorization", "cookie"}

# Global Langfuse client
_langfuse_client: Optional[Langfuse] = None
_langfuse_enabled: bool = False


def init_langfuse() -> Optional[Langfuse]:
    """
    Initialize Langfuse client if environment variables are set.

    Required environment variables:
    - LANGFUSE_PUBLIC_KEY
    - LANGFUSE_SECRET_KEY
    - LANGFUSE_HOST (optional, defaults to https://cloud.langfuse.com)

    Returns:
        Langfuse client if initialized, None otherwise
    """
    global _langfuse_client, _langfuse_enabled

    public_key = os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = os.getenv("LANGFUSE_SECRET_KEY")
    host = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

    if not public_key or not secret_key:
        logger.info("Langfuse not configured - observability disabled")
        _langfuse_enabled = False
        return None

    try:
        _langfuse_client = Langfuse(
            public_key=public_key,
            secret_key=secret_key,
            host=host,
        )
        _langfuse_enabled = True
        logger.info(f"Langfuse initialized successfully - host: {host}")
        return _langfuse_client

    except Exception as e:
        logger.error(f"Failed to initialize Langfuse: {e}")
        _langfuse_enabled = False
        return None


def is_langfuse_enabled() -> bool:
    """Check if Langfuse is enabled."""
    return _langfuse_enabled


def shutdown_langfuse():
    """Flush and shutdown Langfuse client."""
    global _langfuse_client, _langfuse_enabled

    if _langfuse_client:
        logger.info("Shutting down Langfuse - flushing pending traces")
        try:
            _langfuse_client.flush()
        except Exception as e:
            logger.error(f"Error flushing Langfuse: {e}")
        finally:
            _langfuse_client = None
            _langfuse_enabled = False


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with credentials masked."""
    return {
        key: "***" if key.lower() in REDACTED_HEADERS else value
        for key, value in headers.items()
    }


class LangfuseMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic request tracing with Langfuse.

    Tags each trace with the request method, path, redacted headers
    and the response status code.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Trace the HTTP request/response cycle."""

        if not is_langfuse_enabled():
            return await call_next(request)

        method = request.method
        path = request.url.path

        try:
            langfuse = get_client()
            langfuse.update_current_trace(
                name=f"{method} {path}",
                metadata={
                    "method": method,
                    "path": path,
                    "headers": redact_headers(dict(request.headers)),
                },
                tags=["http", "proxy", method.lower()],
            )

            response = await call_next(request)

            langfuse.update_current_trace(
                output={"status_code": response.status_code},
                tags=["http", "proxy", method.lower(), f"status_{response.status_code}"],
            )

            return response

        except Exception as e:
            logger.exception(f"Error in Langfuse middleware: {e}")

            try:
                langfuse = get_client()
                langfuse.update_current_trace(
                    output={"error": str(e)},
                    tags=["error", "middleware_error"],
                )
            except Exception as langfuse_error:
                logger.error(f"Failed to update Langfuse trace: {langfuse_error}")

            raise
