"""Abstract ERP Client Interface.

This module defines the abstract interface that ERP session clients implement.
It is intentionally ERP-agnostic - no MKG table names or wire formats here.

Clients implement this interface to:
1. Authenticate and keep a session alive
2. Issue GET/POST/PUT/DELETE calls against the ERP REST API
3. Report connection health

Key Design Principles:
- The injection engine, Temporal activities and API routes depend ONLY on this interface
- ERP-specific implementations live in connector subfolders
- Failures are raised as exceptions; callers decide how to classify them
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type


# =============================================================================
# Enums
# =============================================================================

class ERPConnectionStatus(str, Enum):
    """Connection status to ERP system."""
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    AUTHENTICATING = "AUTHENTICATING"
    FAILED = "FAILED"


class HttpMethod(str, Enum):
    """HTTP verbs the session client supports."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class ERPConfig:
    """Configuration for an ERP client.

    Generic configuration that can be extended by specific connectors.
    """
    connector_type: str = "mkg"             # registry key
    base_url: str = ""                      # ERP host, e.g. "https://erp.example.com"

    # Default customer identifiers used when a customer cannot be resolved
    administration_number: str = "1"
    debtor_number: str = "30010"
    relation_number: str = "2"

    # Behavior
    timeout_seconds: float = 30.0           # per request

    # ERP-specific settings
    custom_settings: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Abstract Client Interface
# =============================================================================

class ERPClient(ABC):
    """Abstract base class for ERP session clients.

    DESIGN PRINCIPLE:
    - Request bodies and responses are plain dicts (decoded JSON)
    - Non-2xx responses raise; a successful call returns the decoded body
    - Session handling (login, re-login) is the client's concern

    Implementations:
    - connectors/mkg/mkg_client.py
    """

    def __init__(self, config: ERPConfig):
        """Initialize client with configuration."""
        self.config = config
        self._connection_status = ERPConnectionStatus.DISCONNECTED

    # =========================================================================
    # Connection Management
    # =========================================================================

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying HTTP session (does not log in)."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the underlying HTTP session."""
        pass

    @abstractmethod
    async def login(self) -> bool:
        """Authenticate and store a session.

        Returns:
            True if a session token was obtained
        """
        pass

    @abstractmethod
    async def test_connection(self) -> ERPConnectionStatus:
        """Log in and issue a cheap query to verify the ERP is reachable."""
        pass

    @property
    def connection_status(self) -> ERPConnectionStatus:
        """Get current connection status."""
        return self._connection_status

    async def __aenter__(self) -> "ERPClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # =========================================================================
    # REST Verbs
    # =========================================================================

    @abstractmethod
    async def request(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Issue a request against the ERP REST root.

        Args:
            method: HTTP verb
            endpoint: Path relative to the REST root (query string included)
            body: JSON body for POST/PUT

        Returns:
            Decoded response body ({} for an empty body)
        """
        pass

    async def get(self, endpoint: str) -> Dict[str, Any]:
        return await self.request(HttpMethod.GET, endpoint)

    async def post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(HttpMethod.POST, endpoint, body)

    async def put(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.request(HttpMethod.PUT, endpoint, body)

    async def delete(self, endpoint: str) -> Dict[str, Any]:
        return await self.request(HttpMethod.DELETE, endpoint)


# =============================================================================
# Client Registry
# =============================================================================

_client_registry: Dict[str, Type[ERPClient]] = {}


def register_connector(connector_type: str) -> Callable[[Type[ERPClient]], Type[ERPClient]]:
    """Decorator to register a client implementation."""
    def decorator(cls):
        _client_registry[connector_type] = cls
        return cls
    return decorator


def create_client(config: ERPConfig) -> ERPClient:
    """Create a client instance from configuration.

    Args:
        config: ERPConfig with connector_type specified

    Returns:
        Configured client instance

    Raises:
        ValueError: If connector_type is not registered
    """
    connector_type = config.connector_type.lower()

    if connector_type not in _client_registry:
        available = list(_client_registry.keys())
        raise ValueError(
            f"Unknown connector type: {connector_type}. "
            f"Available: {available}"
        )

    client_class = _client_registry[connector_type]
    return client_class(config)


def list_available_connectors() -> List[str]:
    """List all registered connector types."""
    return list(_client_registry.keys())
