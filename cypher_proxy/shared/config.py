"""
Base configuration for the Cypher proxy.

Uses Pydantic Settings for environment-based configuration.
The gateway extends BaseProxySettings with its own tunables.
"""

from pydantic_settings import BaseSettings

# Settings whose absence is reported at startup
REQUIRED_SETTINGS: dict[str, str] = {
    "neo4j_uri": "NEO4J_URI",
    "neo4j_username": "NEO4J_USERNAME",
    "neo4j_password": "NEO4J_PASSWORD",
    "api_key": "API_KEY",
}


class BaseProxySettings(BaseSettings):
    """Base settings shared by every component of the proxy."""

    # Neo4j connection
    neo4j_uri: str = ""
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    # Shared secret expected in the x-api-key header
    api_key: str = ""

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def settings_presence(self) -> dict[str, bool]:
        """Map each required env var name to whether it has a value."""
        return {
            env_name: bool(getattr(self, field))
            for field, env_name in REQUIRED_SETTINGS.items()
        }

    def missing_settings(self) -> list[str]:
        """Return the env var names of required settings that are empty."""
        return [name for name, loaded in self.settings_presence().items() if not loaded]
