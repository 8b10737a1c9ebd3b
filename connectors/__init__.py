"""ERP Connectors - Pluggable ERP system integrations.

This package contains the abstract ERP client interface and concrete
implementations for specific ERP systems (MKG).

Key Design Principle:
- The injection engine depends ONLY on the ERPClient interface
- Wire formats and table names stay inside the connector subfolder

To add a new ERP:
1. Create a new folder (e.g., exact/)
2. Implement the ERPClient interface
3. Register using @register_connector decorator
"""

from connectors.erp_base import (
    ERPClient,
    ERPConfig,
    ERPConnectionStatus,
    HttpMethod,
    create_client,
    register_connector,
    list_available_connectors,
)

# Importing the package registers the "mkg" connector
from connectors import mkg  # noqa: F401

__all__ = [
    # Core interface
    "ERPClient",
    "ERPConfig",
    "ERPConnectionStatus",
    "HttpMethod",
    # Factory
    "create_client",
    "register_connector",
    "list_available_connectors",
]
