"""
Error types for the Cypher SDK
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import json


@dataclass(frozen=True)
class Neo4jError:
    """One entry of the ``errors`` list returned by the server"""
    code: str
    message: str

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Neo4jError":
        return cls(
            code=str(data.get("code", "Neo4jError")),
            message=str(data.get("message", "Unknown Neo4j error")),
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class CypherError(Exception):
    """
    Base exception for all Cypher SDK errors.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportError(CypherError):
    """Network, timeout or malformed response errors. Never retried by the SDK."""
    def __init__(self, message: str):
        super().__init__(f"Transport error: {message}")


class ServerError(CypherError):
    """The server reported one or more errors for a batch"""
    def __init__(self, errors: List[Neo4jError], transaction_open: bool = False):
        self.errors = list(errors)
        # whether the failed response still reported an open transaction
        self.transaction_open = transaction_open
        summary = "; ".join(str(e) for e in self.errors) or "unknown error"
        super().__init__(f"Server error: {summary}")

    @property
    def code(self) -> Optional[str]:
        """Code of the first reported error"""
        return self.errors[0].code if self.errors else None

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors]


class ConnectionError(CypherError):
    """Connection errors"""
    def __init__(self, message: str):
        super().__init__(f"Connection error: {message}")


class TransactionError(CypherError):
    """Transaction errors"""
    def __init__(self, message: str):
        super().__init__(f"Transaction error: {message}")


class InvalidTransactionState(TransactionError):
    """An operation was called that is not valid in the current transaction state"""
    def __init__(self, operation: str, state: Any):
        self.operation = operation
        self.state = state
        super().__init__(f"cannot {operation} a transaction in state {state}")


class TransactionExpired(TransactionError):
    """The server no longer knows the transaction; a new one must be started"""
    def __init__(self, endpoint: Optional[str], errors: Optional[List[Neo4jError]] = None):
        self.endpoint = endpoint
        self.errors = list(errors or [])
        super().__init__(f"transaction {endpoint or '<unknown>'} has expired")


class SerializationError(CypherError):
    """Serialization/deserialization errors"""
    def __init__(self, message: str):
        super().__init__(f"Serialization error: {message}")

    @classmethod
    def from_json_error(cls, error: json.JSONDecodeError) -> "SerializationError":
        """Create SerializationError from json.JSONDecodeError"""
        return cls(f"JSON error: {error.msg} at line {error.lineno}, column {error.colno}")


class DecodeError(CypherError):
    """Base for errors raised while converting a result value to a requested type"""


class TypeMismatch(DecodeError):
    """The runtime variant of a value does not match the requested type"""
    def __init__(self, expected: str, actual: str, detail: str = ""):
        self.expected = expected
        self.actual = actual
        message = f"Type mismatch: expected {expected}, found {actual}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class UnexpectedNull(DecodeError):
    """A null value was requested as a non-optional type"""
    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(f"Unexpected null: expected {expected}")


class ColumnNotFound(DecodeError):
    """The requested column name or index does not exist in the result"""
    def __init__(self, column: Union[str, int]):
        self.column = column
        super().__init__(f"Column not found: {column!r}")


class InvalidOperationError(CypherError):
    """Invalid operation errors"""
    def __init__(self, message: str):
        super().__init__(f"Invalid operation: {message}")


# ============================================================================
# Error Conversion Helpers
# ============================================================================

def from_wire_errors(errors: List[Dict[str, Any]]) -> List[Neo4jError]:
    """
    Convert the raw ``errors`` list of a response into Neo4jError values.
    """
    return [Neo4jError.from_wire(e) if isinstance(e, dict) else Neo4jError("Neo4jError", str(e))
            for e in errors]


def from_json_error(error: json.JSONDecodeError) -> SerializationError:
    """
    Convert json.JSONDecodeError to SerializationError.
    """
    return SerializationError.from_json_error(error)
