"""
Entry point — starts the Cypher proxy HTTP server.

Reads NEO4J_URI, NEO4J_USERNAME, NEO4J_PASSWORD and API_KEY from the
environment (or .env) and serves POST /api/proxy.

Usage:
    python main.py

Equivalent to:
    uvicorn cypher_proxy.gateway.app:app --host 0.0.0.0 --port 8000
"""

import uvicorn

from cypher_proxy.gateway.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "cypher_proxy.gateway.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
