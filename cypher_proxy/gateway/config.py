"""Gateway configuration."""

from functools import lru_cache

from pydantic import AliasChoices, Field

from cypher_proxy.shared.config import BaseProxySettings


class GatewaySettings(BaseProxySettings):
    """Settings specific to the FastAPI proxy gateway."""

    host: str = Field("0.0.0.0", validation_alias=AliasChoices("PROXY_HOST", "host"))
    port: int = Field(8000, validation_alias=AliasChoices("PROXY_PORT", "port"))
    cors_origins: list[str] = Field(
        ["*"], validation_alias=AliasChoices("PROXY_CORS_ORIGINS", "cors_origins")
    )

    # Request bounds (0 disables the check)
    max_batch_size: int = Field(
        100, validation_alias=AliasChoices("PROXY_MAX_BATCH_SIZE", "max_batch_size")
    )
    max_body_bytes: int = Field(
        1_048_576, validation_alias=AliasChoices("PROXY_MAX_BODY_BYTES", "max_body_bytes")
    )

    # Per-statement timeout in seconds, passed to the driver
    statement_timeout: float | None = Field(
        None,
        validation_alias=AliasChoices("PROXY_STATEMENT_TIMEOUT", "statement_timeout"),
    )


@lru_cache
def get_settings() -> GatewaySettings:
    """Return the process-wide gateway settings."""
    return GatewaySettings()
