"""Client configuration.

Settings for the HTTP side of the client. Nothing below the GraphClient
reads the environment; ``ClientConfig.from_env()`` is the only place that
does, for applications that want it.
"""
import os
from dataclasses import dataclass

from . import __version__


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for GraphClient and its transport."""

    # Request timeout in seconds, applied by the transport
    timeout: float = 30.0
    verify_tls: bool = True
    # Substituted into Neo4j 4+ discovery documents ("{databaseName}")
    database: str = "neo4j"
    user_agent: str = f"cypher-sdk/{__version__}"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from CYPHER_SDK_* environment variables."""
        return cls(
            timeout=float(os.getenv("CYPHER_SDK_TIMEOUT", "30")),
            verify_tls=os.getenv("CYPHER_SDK_VERIFY_TLS", "true").lower() in ("true", "1", "yes"),
            database=os.getenv("CYPHER_SDK_DATABASE", "neo4j"),
        )
