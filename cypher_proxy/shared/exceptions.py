"""
Custom exception hierarchy for the Cypher proxy.

All request-level errors inherit from ProxyError so they can be caught
uniformly by the gateway and turned into a JSON response.
"""

from typing import Any


class ProxyError(Exception):
    """Base exception for all errors that end a proxy request."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body for this error."""
        return {"error": self.message}


class AuthError(ProxyError):
    """Missing or wrong x-api-key header."""

    status_code = 403

    def __init__(self, message: str = "Forbidden: Invalid API Key"):
        super().__init__(message)


class ValidationError(ProxyError):
    """Malformed request body; nothing was executed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: str | None = None,
        received_string: str | None = None,
    ):
        self.details = details
        self.received_string = received_string
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.details is not None:
            body["details"] = self.details
        if self.received_string is not None:
            body["receivedString"] = self.received_string
        return body


class PayloadTooLargeError(ValidationError):
    """Request body exceeds the configured size limit."""

    status_code = 413


class InfrastructureError(ProxyError):
    """Neo4j driver or session unavailable; no statement was attempted."""

    status_code = 500


class ExecutionError(ProxyError):
    """A statement failed while running against Neo4j."""

    status_code = 500

    def __init__(
        self,
        failed_statement: str,
        details: str,
        parameters: dict[str, Any] | None = None,
        message: str = "Failed to execute query",
    ):
        self.failed_statement = failed_statement
        self.details = details
        self.parameters = parameters
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "failedStatement": self.failed_statement,
            "details": self.details,
        }


class DatabaseConnectionError(Exception):
    """Failed to create or verify the Neo4j driver."""
