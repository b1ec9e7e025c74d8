"""
Request Normalizer — turns a raw proxy body into a NormalizedRequest.

``statements`` and ``parameters`` each accept two shapes on the wire.
Both are classified into tagged variants that resolve themselves to one
canonical internal shape, so the dispatcher never inspects raw types.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from cypher_proxy.shared.exceptions import ValidationError

STATEMENT_DELIMITER = ";"

MISSING_STATEMENT_MESSAGE = 'Request body must contain either "statement" or "statements"'


# ─── Request Model ──────────────────────────────────────────


class ProxyRequest(BaseModel):
    """Body of POST /api/proxy."""

    statement: str | None = Field(None, description="Single Cypher statement")
    statements: list[str] | str | None = Field(
        None,
        description="Batch of statements, as a list or a ';'-delimited string",
    )
    parameters: dict[str, Any] | str | None = Field(
        None,
        description="Parameters for the single statement, as an object or a JSON string",
    )


# ─── Tagged Inputs ──────────────────────────────────────────


@dataclass(frozen=True)
class StatementSequence:
    """``statements`` given as a JSON array; used as-is."""

    items: list[str]

    def resolve(self) -> tuple[str, ...]:
        return tuple(self.items)


@dataclass(frozen=True)
class DelimitedStatements:
    """``statements`` given as one string of ';'-separated statements."""

    text: str

    def resolve(self) -> tuple[str, ...]:
        fragments = (part.strip() for part in self.text.split(STATEMENT_DELIMITER))
        return tuple(part for part in fragments if part)


@dataclass(frozen=True)
class StructuredParameters:
    """``parameters`` given as a JSON object."""

    values: dict[str, Any]

    def resolve(self) -> dict[str, Any]:
        return dict(self.values)


@dataclass(frozen=True)
class EncodedParameters:
    """``parameters`` given as a string holding a JSON object."""

    text: str

    def resolve(self) -> dict[str, Any]:
        """Decode the string; blank means no parameters.

        Raises:
            ValidationError: If the string is not JSON or not a JSON object.
        """
        if not self.text.strip():
            return {}
        try:
            decoded = json.loads(self.text)
        except json.JSONDecodeError as e:
            raise ValidationError(
                'Invalid JSON format in "parameters" string',
                details=str(e),
                received_string=self.text,
            ) from e
        if not isinstance(decoded, dict):
            raise ValidationError(
                'Invalid JSON format in "parameters" string',
                details=f"Expected a JSON object, got {type(decoded).__name__}",
                received_string=self.text,
            )
        return decoded


StatementsInput = Union[StatementSequence, DelimitedStatements]
ParametersInput = Union[StructuredParameters, EncodedParameters]


def classify_statements(raw: list[str] | str | None) -> StatementsInput | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return DelimitedStatements(raw)
    return StatementSequence(list(raw))


def classify_parameters(raw: dict[str, Any] | str | None) -> ParametersInput | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return EncodedParameters(raw)
    return StructuredParameters(raw)


# ─── Normalization ──────────────────────────────────────────


@dataclass(frozen=True)
class NormalizedRequest:
    """Canonical request shape handed to the dispatcher."""

    statement: str | None = None
    statements: tuple[str, ...] = ()
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def is_batch(self) -> bool:
        return bool(self.statements)


def parse_body(raw: bytes) -> ProxyRequest:
    """Decode and validate the raw request body.

    An empty body is treated as ``{}`` so it reports the missing
    statement rather than a decoding error.

    Raises:
        ValidationError: If the body is not a JSON object or a field
            has an unsupported type.
    """
    if not raw.strip():
        return ProxyRequest()

    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(
            "Request body must be a valid JSON object", details=str(e)
        ) from e

    if not isinstance(payload, dict):
        raise ValidationError(
            "Request body must be a valid JSON object",
            details=f"Expected a JSON object, got {type(payload).__name__}",
        )

    try:
        return ProxyRequest.model_validate(payload)
    except PydanticValidationError as e:
        summary = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError("Invalid request body", details=summary) from e


def normalize(request: ProxyRequest, max_batch_size: int = 0) -> NormalizedRequest:
    """Resolve statements and parameters into a NormalizedRequest.

    Args:
        request: Validated request body.
        max_batch_size: Largest accepted batch; 0 means unlimited.

    Raises:
        ValidationError: On an undecodable parameters string, a batch over
            the limit, or when no statement is present at all.
    """
    parameters_input = classify_parameters(request.parameters)
    parameters = parameters_input.resolve() if parameters_input else {}

    statements_input = classify_statements(request.statements)
    statements = statements_input.resolve() if statements_input else ()

    statement = request.statement if request.statement and request.statement.strip() else None

    if not statements and statement is None:
        raise ValidationError(MISSING_STATEMENT_MESSAGE)

    if max_batch_size > 0 and len(statements) > max_batch_size:
        raise ValidationError(
            f"Batch of {len(statements)} statements exceeds the limit of {max_batch_size}"
        )

    return NormalizedRequest(
        statement=statement,
        statements=statements,
        parameters=parameters,
    )
